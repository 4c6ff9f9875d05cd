"""Compiles output timelines into a shared pseudoclock and per-device data.

The main entry points are :func:`pseudoclock.clock.compile_clock` for a single
pseudoclock, and :func:`pseudoclock.shot_compilation.compile_shot` for all the
devices of a shot.
"""
