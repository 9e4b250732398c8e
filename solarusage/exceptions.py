class UsageError(Exception): ...


class TimestampError(UsageError): ...


class DocumentError(UsageError): ...


class MergeError(UsageError): ...


class NormalizeError(UsageError): ...


class SerializeError(UsageError): ...


class ConfigError(UsageError): ...


class ClientError(UsageError): ...


def require(condition: bool, message: str, exc: type[UsageError] = UsageError):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
