class DataClientError(Exception):
    """Base class."""


class DatabaseError(DataClientError):
    pass


class NotFoundError(DataClientError):
    pass


class ConfigurationError(DataClientError):
    """Справочные данные (например, тариф FREE) отсутствуют в каталоге."""


class ValidationError(DataClientError):
    """Неизвестное имя фичи / измерения лимита и прочие ошибки вызывающего кода."""


class DuplicateEntryError(DatabaseError):
    pass


class LimitExceededError(DataClientError):
    def __init__(self, message: str, current: int, limit: int | None, dimension: str):
        super().__init__(message)
        self.current = current
        self.limit = limit
        self.dimension = dimension
