from .request import ConversionRequest, EncodingCode, QuantizationCode
from .result import ComponentLayout, ConversionResult, ElementSemantic

__all__ = [
    "ConversionRequest",
    "EncodingCode",
    "QuantizationCode",
    "ComponentLayout",
    "ConversionResult",
    "ElementSemantic",
]
