class MediVisionError(Exception):
    """Base class for errors raised by the engine."""


class ConfigurationError(MediVisionError):
    pass


class PrescriptionParseError(MediVisionError):
    pass
