"""Business services behind the HTTP routes."""
