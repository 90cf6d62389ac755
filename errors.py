class NotFoundError(LookupError):
    """Raised when a plan, plan program or program row does not exist."""
