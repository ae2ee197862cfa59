# mla_office/exports/exceptions.py

class ExportError(Exception):
    """Base exception for all export processing errors."""
    pass

class ExportJobNotFoundError(ExportError):
    """Raised when a specific export job cannot be found."""
    def __init__(self, export_id: str = None):
        self.export_id = export_id
        if export_id:
            super().__init__(f"Export job '{export_id}' not found.")
        else:
            super().__init__("Export job not found.")

class InvalidExportTransitionError(ExportError):
    """Raised when a write would move a job backwards or touch a finished job."""
    def __init__(self, export_id: str, reason: str):
        self.export_id = export_id
        self.reason = reason
        super().__init__(f"Invalid update for export job '{export_id}': {reason}")

class ExportProcessingError(ExportError):
    """Raised for failures while building an export after the job was accepted."""
    pass

class ArtifactPublishError(ExportProcessingError):
    """Raised when the encoded file cannot be stored."""
    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to upload export file '{key}': {reason}")
