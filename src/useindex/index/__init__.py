"""Source parsing and file discovery."""
