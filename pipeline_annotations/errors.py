"""
Annotation-specific error types.

All errors inherit from AnnotationError for easy catching.
Errors are explicit and provide actionable messages.

Unknown annotation ids are NOT errors at the store level: store
operations report them as a False return. UnknownAnnotationError is
only raised by the outer surfaces (HTTP, CLI).
"""


class AnnotationError(Exception):
    """Base exception for all annotation-related failures."""
    pass


class InvalidSelectionError(AnnotationError):
    """Raised when an annotation would be built from an unusable node selection."""
    
    def __init__(self, message: str = "Cannot create annotation with empty node selection"):
        super().__init__(message)


class EmptySelectionError(InvalidSelectionError):
    """Raised when annotation creation is attempted with no nodes."""
    pass


class ImmutableFieldError(AnnotationError):
    """Raised when an update tries to change a field fixed at creation."""
    
    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Annotation field '{field_name}' is immutable")


class UnknownAnnotationError(AnnotationError):
    """Raised by outer surfaces when an annotation id does not exist."""
    
    def __init__(self, annotation_id: str):
        self.annotation_id = annotation_id
        super().__init__(f"Annotation not found: {annotation_id}")


class MalformedPersistedDataError(AnnotationError):
    """Raised when a persisted annotation document cannot be parsed at all."""
    
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed annotation data: {reason}")
