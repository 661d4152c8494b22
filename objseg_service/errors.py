"""Exception types shared by the pipeline, the collaborators and the API."""


class SegmentationError(Exception):
    """Terminal failure of a segmentation call. No partial result is produced."""


class InputTooSmall(SegmentationError):
    pass


class NoObjectsFound(SegmentationError):
    pass


class EncodingFailure(SegmentationError):
    pass


class AlternativeExtractorFailure(SegmentationError):
    pass


class InvalidInput(ValueError):
    """Raised by caller-side validation before the core is invoked."""


class StorageError(Exception):
    pass
