"""Flask blueprints for the users-api service."""
