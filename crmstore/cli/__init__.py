"""Command-line interface for crmstore."""
