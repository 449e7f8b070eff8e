"""Exceptions raised by kluster."""


class KlusterError(Exception):
    """Base class for all kluster errors."""


class RemoteFetchFailed(KlusterError):
    """The k3s releases API was unreachable or answered with a failure."""

    def __init__(self, body: str, status_code: int = None):
        self.body = body
        self.status_code = status_code
        prefix = f"HTTP {status_code}: " if status_code else ""
        super().__init__(f"Failed to fetch k3s releases: {prefix}{body}")


class CacheInitFailed(KlusterError):
    """The release cache directory or file could not be created."""

    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Unable to initialise release cache at {path}: {reason}")


class ParseFailed(KlusterError):
    """A persisted document or command payload could not be decoded."""

    def __init__(self, source, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Unable to parse {source}: {reason}")


class MissingClusterAddress(KlusterError):
    """The cluster has no IP address to point the kubeconfig at."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Kluster {name!r} has no IP address")


class ClusterNotFound(KlusterError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'kluster "{name}" does not exist')


class MultipassError(KlusterError):
    """A multipass invocation exited with a non-zero status."""

    def __init__(self, command, stderr: str, returncode: int):
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(
            f"Command '{' '.join(command)}' failed with exit code {returncode}: {stderr.strip()}"
        )


class InvalidDuration(KlusterError, ValueError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid duration {value!r}, expected values like 1ms, 30s, 24h or 1h30m")
