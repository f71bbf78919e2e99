"""Custom exception classes for Steward."""


class StewardError(Exception):
    """Base exception for Steward errors."""

    pass


class ConfigurationError(StewardError):
    """Raised when configuration is invalid or missing."""

    pass


class VersionParseError(StewardError):
    """Raised when a version string is not a valid semantic version."""

    pass


class ConstraintParseError(StewardError):
    """Raised when a Kubernetes version constraint clause cannot be parsed."""

    pass


class CatalogParseError(StewardError):
    """Raised when an add-on catalog document is malformed."""

    pass


class InstalledStateError(StewardError):
    """Raised when the persisted installed-state annotation cannot be read."""

    pass


class ManifestError(StewardError):
    """Base class for failures while remapping an add-on manifest."""

    pass


class ManifestLoadError(ManifestError):
    """Raised when a manifest cannot be split into Kubernetes objects."""

    pass


class LabelConflictError(ManifestError):
    """Raised when an object already carries a selector label with another value."""

    def __init__(self, key: str, expected: str, actual: str):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"label {key!r} already set to {actual!r} while it should be {expected!r}")


class CredentialInjectionError(ManifestError):
    """Raised when a pod spec is too malformed to attach a credential binding."""

    pass


class AssetRemapError(ManifestError):
    """Raised when the asset remapper rejects a manifest."""

    pass


class ClusterAccessError(StewardError):
    """Raised when a read or write against the cluster fails."""

    pass


class AlreadyExistsError(ClusterAccessError):
    """Raised by create operations when the object is already present."""

    pass


class KubectlCommandError(ClusterAccessError):
    """Raised when a kubectl CLI command fails."""

    pass
