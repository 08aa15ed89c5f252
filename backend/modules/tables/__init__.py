# backend/modules/tables/__init__.py

"""
Dining tables: occupancy, reservations and order moves.
"""
