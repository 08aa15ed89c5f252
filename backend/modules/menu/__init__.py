"""Menu catalogue used to price order lines."""
