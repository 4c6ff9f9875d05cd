"""Expansion of output timelines into one raw sample per clock tick."""

from ._expander import expand_timeline, expand_output

__all__ = ["expand_timeline", "expand_output"]
