# s3source/modules/errors.py
"""
Exceptions raised by the S3 package source.

Every error is fatal for the operation that raised it; `status_code` is the
process exit status the CLI uses when the error reaches it.
"""


class SourceError(Exception):
    status_code = 1


class S3AccessError(SourceError):
    status_code = 40

    def __init__(self, uri: str, aws_error: str):
        self.uri = uri
        self.aws_error = aws_error
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return (
            f"[aws-s3] Error: There was an error while trying to access S3 bucket `{self.uri}`.\n"
            "Make sure you have correct S3 access via running aws cli locally.\n"
            f" > Internal Error: {self.aws_error}\n"
            "If you're using sso login, please run: aws sso login"
        )


class ValidationError(SourceError):
    status_code = 41


class MissingArchiveError(SourceError):
    status_code = 42


class ArchiveError(SourceError):
    status_code = 43


class SourceURIError(SourceError):
    status_code = 44
