# backend/modules/settings/__init__.py

"""
Workflow and printer configuration.
"""
