#!/usr/bin/env python3

"""
Scheduler

The host loop.  Steps the CPU at the requested clock speed, and separately
ticks the delay and sound timers at exactly 60Hz of real time.  The two are
decoupled: at 700 operations per second, roughly 12 instructions run between
timer ticks, and at an uncapped speed there may be thousands.

If the host lags, the timers catch up on the next pass rather than drifting,
so a program timing itself with the delay timer still sees real time.

Inputs, display refreshes and the buzzer are serviced at 60Hz too, including
while the CPU is waiting for a keypress.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from time import perf_counter
from .constants import TIMER_FREQ, DISPLAY_FREQ

TIMER_INTERVAL = 1.0 / TIMER_FREQ
DISPLAY_INTERVAL = 1.0 / DISPLAY_FREQ
MAX_TIMER_CATCH_UP = 0x100  # Both timers are 8-bit, so any more ticks than this change nothing


class Scheduler:
    def __init__(self, cpu, inputs, audio, clock_speed=None, timer=perf_counter):
        self.cpu = cpu
        self.machine = cpu.machine
        self.framebuffer = cpu.machine.framebuffer
        self.inputs = inputs
        self.audio = audio
        self.timer = timer

        # User can specify 0 (or None) for infinite
        self.core_interval = None if not clock_speed or clock_speed <= 0 else 1.0 / clock_speed

        self.next_timer_tick_time = 0
        self.next_display_update_time = 0
        self.next_perf_report_time = 0
        self.perf_counter_fps = 0
        self.perf_counter_ops = 0

    def run(self, max_cycles=None):
        # Runs until the inputs ask to quit (or max_cycles have been stepped).  Returns the number of cycles run.
        # Machine faults are not caught here: the caller decides whether to halt or reset.
        cpu = self.cpu
        machine = self.machine
        timer = self.timer
        cycles = 0
        start_time = timer()
        self.next_timer_tick_time = start_time + TIMER_INTERVAL
        self.next_display_update_time = start_time
        self.next_perf_report_time = start_time + 1.0

        while max_cycles is None or cycles < max_cycles:
            this_time = timer()  # Do this first for maximum precision

            # Performance counters
            if this_time >= self.next_perf_report_time:
                self.next_perf_report_time = this_time + 1.0
                # Reporting the performance should be done before a refresh, as refreshing will likely show the report
                self.framebuffer.report_perf(self.perf_counter_fps, self.perf_counter_ops)
                self.perf_counter_ops = 0
                self.perf_counter_fps = 0

            # Prevent unnecessary display rendering in excess of host frame rate
            if this_time >= self.next_display_update_time:
                if self.inputs.process_messages():  # Process inputs at 60Hz too, to avoid slowdown
                    machine.cancel_key_wait()
                    break

                self.next_display_update_time = this_time + DISPLAY_INTERVAL
                self.framebuffer.refresh_display()
                self.perf_counter_fps += 1

            self.tick_timers(this_time)

            # Snapshot the keys once per cycle, before fetch
            machine.set_keys(self.inputs.get_key_states())
            cpu.step()
            cycles += 1
            self.perf_counter_ops += 1

            if self.core_interval is not None:
                # Wait for next CPU instruction.  Do this last for maximum precision (takes into account time spent on
                # this instruction)
                next_time = this_time + self.core_interval

                while timer() < next_time:  # Unfortunately we have to do this to get the timing right
                    pass

        self.audio.enable_buzzer(False)
        return cycles

    def tick_timers(self, this_time):
        # Apply every 60Hz tick that has fallen due by this_time, then update the buzzer.  Returns the ticks applied.
        ticks = 0

        if this_time >= self.next_timer_tick_time:
            ticks = int((this_time - self.next_timer_tick_time) / TIMER_INTERVAL) + 1
            self.next_timer_tick_time += ticks * TIMER_INTERVAL

            for _ in range(min(ticks, MAX_TIMER_CATCH_UP)):
                self.cpu.tick_timers()

        sound_active = self.machine.sound_active()

        if sound_active != self.audio.buzzer_enabled:
            self.audio.enable_buzzer(sound_active)

        return ticks
