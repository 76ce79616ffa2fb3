from __future__ import annotations


class DynamodownError(Exception):
    pass


class NotFoundError(DynamodownError):
    pass


class ValidationError(DynamodownError):
    pass


class NotOpenError(ValidationError):
    pass


class UnsupportedTypeError(DynamodownError):
    def __init__(self, type_name: str) -> None:
        super().__init__(f"cannot encode value of type {type_name}")
        self.type_name = type_name


class UnknownTagError(DynamodownError):
    def __init__(self, tag: str) -> None:
        super().__init__(f"cannot decode attribute value with tag {tag!r}")
        self.tag = tag


class BatchRetryExceededError(DynamodownError):
    def __init__(self, *, operation: str, unprocessed_count: int) -> None:
        super().__init__(f"{operation}: retry limit exceeded (unprocessed={unprocessed_count})")
        self.operation = operation
        self.unprocessed_count = unprocessed_count


class ProviderError(DynamodownError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
