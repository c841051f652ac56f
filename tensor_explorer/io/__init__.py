"""File access and path discovery."""
