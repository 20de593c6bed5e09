from .logging import ExtraFieldsFormatter, configure_logging

__all__ = ["ExtraFieldsFormatter", "configure_logging"]
