"""Domain services: account and merchant collaborators and the transaction core."""
