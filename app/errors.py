# -*- coding: utf-8 -*-
from typing import Optional


class TakanonError(Exception):
    """Base error. Carries the HTTP status and the message shown to the user."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(TakanonError):
    status_code = 400


class DisallowedUrl(TakanonError):
    status_code = 400


class AddressNotFound(TakanonError):
    status_code = 404


class NoPlansFound(TakanonError):
    status_code = 404


class NoUsableDocument(TakanonError):
    status_code = 404


class UpstreamError(TakanonError):
    pass


class DownloadFailed(TakanonError):
    pass


class ExtractionError(TakanonError):
    pass


class ConfigError(TakanonError):
    pass
