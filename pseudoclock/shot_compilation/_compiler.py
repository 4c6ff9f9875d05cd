from __future__ import annotations

import concurrent.futures
import logging

from ._context import CompilationContext, CompiledShot
from ..clock import ClockProgram, compile_clock
from ..device import (
    DeviceCompiler,
    DeviceName,
    CompiledOutputs,
    DeviceData,
    ShotStorage,
    PseudoclockCompiler,
    get_clocked_timelines,
)
from ..formatter import fmt
from ..settings import CompilerSettings
from ..types.exceptions import TimelineConflictError

logger = logging.getLogger(__name__)


def compile_shot(context: CompilationContext) -> CompiledShot:
    """Compiles the timelines of all the devices of a shot.

    The compilation goes through the following steps:

    1. The names and the clock topology of the registry are checked.
    2. The clock program of each pseudoclock is computed from the timelines of all
       the devices it drives.
    3. Once all the clocks are known, each device expands its outputs on the clock
       program, checks them against its limits and encodes them.
       This step runs in parallel if :attr:`CompilerSettings.max_workers` is greater
       than 1.

    The results are collected in registry order, so that the compiled shot doesn't
    depend on the number of workers.

    Raises:
        CompilationError: If any step fails.
            The error has a note indicating the device that was being compiled.
    """

    registry = context.registry
    registry.validate()

    programs: dict[DeviceName, ClockProgram] = {}
    for clock in registry.pseudoclocks():
        timelines = [
            timeline
            for device in registry.clocked_by(clock.name)
            for timeline in get_clocked_timelines(device)
        ]
        try:
            programs[clock.name] = compile_clock(
                timelines,
                context.stop_time,
                clock.get_waits(),
                context.settings,
                clock.name,
            )
        except Exception as error:
            error.add_note(fmt("While compiling the clock of {:device}", clock.name))
            raise

    devices = list(registry)
    outputs: dict[DeviceName, CompiledOutputs] = {}
    device_data: dict[DeviceName, DeviceData] = {}
    if context.settings.max_workers == 1:
        for device in devices:
            compiled, data = _compile_device(
                device, programs[_clock_of(device)], context.settings
            )
            outputs[device.name] = compiled
            device_data[device.name] = data
    else:
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=context.settings.max_workers
        ) as executor:
            futures = [
                executor.submit(
                    _compile_device,
                    device,
                    programs[_clock_of(device)],
                    context.settings,
                )
                for device in devices
            ]
            try:
                for device, future in zip(devices, futures):
                    compiled, data = future.result()
                    outputs[device.name] = compiled
                    device_data[device.name] = data
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
    logger.debug("Compiled %d devices", len(device_data))
    return CompiledShot(programs, outputs, device_data)


def compile_and_store(
    context: CompilationContext, storage: ShotStorage
) -> CompiledShot:
    """Compiles a shot and stores the data of its devices.

    Nothing is written to the storage if the compilation fails.
    """

    shot = compile_shot(context)
    storage.write_devices(shot.device_data)
    logger.info("Stored the data of %d devices in %r", len(shot.device_data), storage)
    return shot


def _clock_of(device: DeviceCompiler) -> DeviceName:
    if isinstance(device, PseudoclockCompiler):
        return device.name
    if device.clocked_by is None:
        raise TimelineConflictError(
            fmt("{:device} is not driven by any pseudoclock", device.name),
            device=device.name,
        )
    return device.clocked_by


def _compile_device(
    device: DeviceCompiler, program: ClockProgram, settings: CompilerSettings
) -> tuple[CompiledOutputs, DeviceData]:
    try:
        compiled = device.expand(program)
        device.validate(compiled)
        data = device.encode(compiled)
    except Exception as error:
        error.add_note(fmt("While compiling {:device}", device.name))
        raise
    if settings.store_raw_outputs:
        data = data.with_datasets(
            {f"raw/{channel}": values for channel, values in compiled.items()}
        )
    return compiled, data
