"""Errors raised by the DOCX → JATS pipeline.

Only EmptyDocumentError and UnsupportedTemplateError reach the caller; the
other two are soft and are handled where they are raised.
"""


class ConversionError(Exception):
    """Base class for conversion failures."""


class EmptyDocumentError(ConversionError):
    """No section with usable content could be segmented from the document."""


NoSectionsFoundError = EmptyDocumentError


class MalformedBoxedTextError(ConversionError):
    """A boxed-text paragraph does not carry the expected block markers."""


class MissingImageDataError(ConversionError):
    """An embedded image could not be read or written during extraction."""


class UnsupportedTemplateError(ConversionError):
    """The requested document template is not handled by this converter."""

    def __init__(self, template):
        self.template = template
        super().__init__(f"Unsupported document template: {template!r}")
