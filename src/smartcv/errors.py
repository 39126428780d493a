from __future__ import annotations


class SmartCVError(Exception):
    """Base class for errors raised by the conversation engine."""


class UploadValidationError(SmartCVError):
    """An uploaded CV was rejected; the message is safe to show to the user."""

    user_message = "Please upload a valid CV (PDF or DOCX, max 5MB)."


class EmptyUpload(UploadValidationError):
    user_message = "The file you sent is empty. Please upload your CV as a PDF or DOCX file."


class FileTooLarge(UploadValidationError):
    user_message = "File is too large. Please upload a CV smaller than 5MB."

    def __init__(self, size: int, limit: int):
        super().__init__(f"upload of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class UnsupportedFileType(UploadValidationError):
    user_message = "Unsupported file type. Please upload your CV as a PDF or DOCX file."

    def __init__(self, detected: str):
        super().__init__(f"unsupported file type '{detected}'")
        self.detected = detected


class MalwareDetected(UploadValidationError):
    user_message = "Your file was flagged by our virus scanner and was not processed."

    def __init__(self, report: str):
        super().__init__(f"malware detected: {report}")
        self.report = report


class NoTextExtracted(UploadValidationError):
    user_message = (
        "We could not read any text from your CV. "
        "Please upload a text-based PDF or DOCX (scanned images are not supported)."
    )


class ProviderError(SmartCVError):
    """An upstream provider (payment, AI, chat channel) call failed."""


class PaymentProviderError(ProviderError):
    pass


class ChannelError(ProviderError):
    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class TaskError(SmartCVError):
    def __init__(self, task_name: str, message: str):
        super().__init__(f"task '{task_name}' {message}")
        self.task_name = task_name


class UnknownTask(TaskError):
    def __init__(self, task_name: str):
        super().__init__(task_name, "has no registered handler")


class TaskFailed(TaskError):
    def __init__(self, task_name: str, cause: BaseException):
        super().__init__(task_name, f"failed: {cause}")
        self.cause = cause


class TaskTimeout(TaskError):
    def __init__(self, task_name: str, timeout_sec: float):
        super().__init__(task_name, f"did not finish within {timeout_sec:g}s")
        self.timeout_sec = timeout_sec
