class ValidationError(ValueError):
    """Rejected user input. The requested mutation is aborted and nothing is saved."""
