"""Exceptions raised by the page store and the application factory."""


class PageError(Exception):
    """Base class for page store failures."""


class PageNotFound(PageError):
    """No stored page matches the requested title."""

    def __init__(self, title: str):
        super().__init__(f"page not found: {title}")
        self.title = title


class MultiplePagesFound(PageError):
    """More than one stored row shares a title."""

    def __init__(self, title: str, count: int):
        super().__init__(f"multiple response error: {count} rows for page {title}")
        self.title = title
        self.count = count


class StoreError(PageError):
    """The database rejected a query or could not be reached."""


class StartupError(RuntimeError):
    """The application cannot be configured or cannot reach its database."""
