"""Order workflow: lifecycle, payments, kitchen tickets and kitchen queue."""
