"""
QTI Errors

Exception types raised across the parsing, conversion and mutation layers.
"""


class QTIError(Exception):
    """Base class for all qtikit errors"""


class XMLParseError(QTIError):
    """Raised when markup cannot be parsed into a document tree"""


class ItemParseError(QTIError):
    """Raised when a single assessment item cannot be extracted"""


class QTIConversionError(QTIError, ValueError):
    """Raised when JSON/XML conversion fails"""


class UnsupportedVersionError(QTIError, ValueError):
    """Raised when a parser is requested for an unregistered QTI version"""
