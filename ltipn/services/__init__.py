"""Services metier / Business services."""
