class DomainError(Exception):
    """Base exception class for all domain-specific exceptions."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ResourceNotFoundError(DomainError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: object) -> None:
        self.resource_type = resource_type
        self.resource_id = str(resource_id)
        message = f"{resource_type} with ID {resource_id} not found"
        super().__init__(message)


class InvalidRelationshipError(DomainError):
    """Both entities exist but the child is not attached to the named parent."""

    def __init__(self, child_type: str, child_id: object, parent_type: str, parent_id: object) -> None:
        self.child_type = child_type
        self.child_id = str(child_id)
        self.parent_type = parent_type
        self.parent_id = str(parent_id)
        message = f"{child_type} {child_id} does not belong to {parent_type.lower()} {parent_id}"
        super().__init__(message)


class UnauthorizedActionError(DomainError):
    """The acting user is not allowed to perform the operation."""

    def __init__(self, action: str, resource_type: str) -> None:
        self.action = action
        self.resource_type = resource_type
        message = f"You don't have permission to {action} this {resource_type.lower()}"
        super().__init__(message)


class ValidationError(DomainError):
    """Exception raised when validation fails."""
