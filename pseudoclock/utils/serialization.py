"""Converters used to store settings and clock programs as JSON.

The `json` converter produces objects that can be dumped with the standard
library json module, the `unconfigured` converter keeps python objects as they
are.
Numpy scalars are converted to the equivalent python numbers, so that values
read back from record arrays can be dumped.
"""

from typing import Any, TypeVar

import cattrs.strategies
import numpy as np
from cattrs.converters import Converter
from cattrs.preconf.json import make_converter as make_json_converter

T = TypeVar("T")

unstruct_collection_overrides = {tuple: tuple}

converters: dict[str, Converter] = {
    "json": make_json_converter(
        unstruct_collection_overrides=unstruct_collection_overrides
    ),
    "unconfigured": Converter(
        unstruct_collection_overrides=unstruct_collection_overrides
    ),
}

for _converter in converters.values():
    _converter.register_unstructure_hook(np.floating, float)
    _converter.register_unstructure_hook(np.integer, int)
    _converter.register_unstructure_hook(np.bool_, bool)


def configure_tagged_union(union: Any, tag_name: str = "type") -> None:
    """Stores the members of a union with the name of their class.

    The union is configured on all the converters.
    """

    for converter in converters.values():
        cattrs.strategies.configure_tagged_union(union, converter, tag_name=tag_name)


def to_json(obj: Any, unstructure_as: Any = None) -> str:
    return converters["json"].dumps(obj, unstructure_as=unstructure_as)


def from_json(data: str | bytes, cls: type[T]) -> T:
    return converters["json"].loads(data, cls)
