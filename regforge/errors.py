"""Error taxonomy for registry maintenance.

Every failure raised by regforge is a ``RegistryError`` subclass. The class
carries a stable ``code`` so that callers (and the CLI exit message) can
tell the kinds apart without parsing the human-readable text.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for all registry maintenance failures."""

    code = "registry-error"


# -- Package location / manifest ------------------------------------------


class ManifestMissing(RegistryError):
    code = "manifest-missing"


class ManifestInvalid(RegistryError):
    code = "manifest-invalid"


class NotDeveloped(RegistryError):
    code = "not-developed"


class UnknownPackage(RegistryError):
    code = "unknown-package"


class PathNotFound(RegistryError):
    code = "path-not-found"


# -- Registry location ------------------------------------------------------


class NoRegistry(RegistryError):
    code = "no-registry"


class AmbiguousRegistry(RegistryError):
    code = "ambiguous-registry"


class RegistryNotFound(RegistryError):
    code = "registry-not-found"


class RegistryExists(RegistryError):
    code = "registry-exists"


# -- Working copies -------------------------------------------------------


class DirtyWorkingCopy(RegistryError):
    code = "dirty-working-copy"


class NoRemote(RegistryError):
    code = "no-remote"


class AmbiguousRemote(RegistryError):
    code = "ambiguous-remote"


class PushRequired(RegistryError):
    code = "push-required"


class InvalidOptions(RegistryError):
    code = "invalid-options"


# -- Consistency ----------------------------------------------------------


class VersionConflict(RegistryError):
    code = "version-conflict"


class NameChangeNotSupported(RegistryError):
    code = "name-change-not-supported"


class UuidChangeNotAllowed(RegistryError):
    code = "uuid-change-not-allowed"


class SelfDependency(RegistryError):
    code = "self-dependency"


class NameMismatch(RegistryError):
    code = "name-mismatch"


class WrongStdlibUuid(RegistryError):
    code = "wrong-stdlib-uuid"


class InvalidCompatRange(RegistryError):
    code = "invalid-compat-range"


class PackageUrlMissing(RegistryError):
    code = "package-url-missing"


class MergeConflict(RegistryError):
    code = "merge-conflict"
