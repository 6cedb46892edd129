"""Core value objects and exceptions."""
