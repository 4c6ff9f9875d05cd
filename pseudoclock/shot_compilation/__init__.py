"""Compiles all the devices of a shot and stores their data."""

from ._compiler import compile_shot, compile_and_store
from ._context import CompilationContext, CompiledShot

__all__ = [
    "compile_shot",
    "compile_and_store",
    "CompilationContext",
    "CompiledShot",
]
