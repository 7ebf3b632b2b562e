"""Registry protocol clients and content-addressed storage."""
