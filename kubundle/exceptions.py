"""Kubundle specific exceptions."""


class AbortProcedureError(Exception):
    """Exception raised when the procedure must be aborted."""

    def __init__(self, message: str, *args):
        self.message = message
        super().__init__(message, *args)


class InvalidYamlError(Exception):
    """Exception raised when a YAML file can't be read or does not match the schema."""

    def __init__(self, message: str, *args):
        self.message = message
        super().__init__(message, *args)


class MissingCredentialError(Exception):
    """Exception raised when a credential's environment variable is not set."""

    def __init__(self, message: str, *args):
        self.message = message
        super().__init__(message, *args)


class ApplyError(Exception):
    """Exception raised when the cluster rejects a manifest."""

    def __init__(
        self, message: str, *args, kind: str | None = None, name: str | None = None
    ):
        self.message = message
        self.kind = kind
        self.name = name
        super().__init__(message, *args)
