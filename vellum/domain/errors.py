"""
Domain errors for document storage.

Schema errors are fatal for the operation that raised them: the flattener
and the fan-in normalizer never return partial results. Path resolution
errors are fatal for a single patch only; the patch engine records them
and continues with the next patch.
"""


class StorageSchemaError(Exception):
    """A value or row does not fit the field schema."""
    pass


class UnsupportedFieldTypeError(StorageSchemaError):
    """Field definition uses a type the store cannot hold."""

    def __init__(self, field_type: str, path: str = ""):
        self.field_type = field_type
        self.path = path
        location = f" at '{path}'" if path else ""
        super().__init__(f"Unsupported field type: {field_type}{location}")


class UnknownFieldTypeError(StorageSchemaError):
    """Fan-in row carries a discriminant no store kind claims."""

    def __init__(self, discriminant: str):
        self.discriminant = discriminant
        super().__init__(f"Unknown field type: {discriminant}")


class InvalidFieldValueError(StorageSchemaError):
    """Value cannot be mapped onto its field's store columns."""

    def __init__(self, field_type: str, path: str, value: object):
        self.field_type = field_type
        self.path = path
        super().__init__(f"Invalid {field_type} field value for '{path}': {value!r}")


class PathResolutionError(Exception):
    """Path segment cannot be resolved against the document tree."""
    pass


class PatchApplicationError(Exception):
    """Patch failed as a whole (e.g. a nested patch list reported errors)."""
    pass


class CollectionNotFoundError(Exception):
    """Collection not found."""
    pass


class DocumentNotFoundError(Exception):
    """Document or document version not found."""
    pass


class VersionConflictError(Exception):
    """Latest version differs from the version the caller edited."""

    def __init__(self, document_id, expected_version_id, actual_version_id):
        self.document_id = document_id
        self.expected_version_id = expected_version_id
        self.actual_version_id = actual_version_id
        super().__init__(
            f"Document {document_id} is at version {actual_version_id}, "
            f"expected {expected_version_id}"
        )
