"""COCO to YOLO annotation converter."""
from .boxes import denormalize, normalize, normalize_many
from .convert import ConversionSummary, ConvertConfig, convert
from .errors import ConfigError, ConversionError, DataError, OutputError
from .schema import Annotation, Category, Dataset, Image

__all__ = [
    "normalize",
    "normalize_many",
    "denormalize",
    "ConvertConfig",
    "ConversionSummary",
    "convert",
    "ConversionError",
    "ConfigError",
    "DataError",
    "OutputError",
    "Annotation",
    "Category",
    "Dataset",
    "Image",
]
