"""Document cleaning and splitting."""

from needle.plugins.preprocessors.preprocessor import PreProcessor

__all__ = ["PreProcessor"]
