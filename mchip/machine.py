#!/usr/bin/env python3

"""
Machine State

Owns every piece of mutable virtual machine data: RAM, the V registers, the
index register, the program counter, the call stack, both timers, the display
buffer and the host key state.  The CPU operates on one of these, so any number
of independent sessions can exist side by side.

The accessor methods are all bounds-checked and raise OutOfBounds rather than
wrapping.  The CPU itself reaches straight into 'v', 'ram', 'pc' and 'i' for
speed, always masking what it writes.

Waiting for a keypress (Fx0A) is recorded here as plain state, rather than
blocking, so the host can keep ticking timers and redrawing while it waits.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import (
    MEM_SIZE, MEM_TOP, PROGRAM_START, FONT_LOCATION, SYSTEM_FONT, NUM_REGISTERS, NUM_KEYS, STACK_SIZE
)
from .errors import OutOfBounds, ProgramTooLarge
from .framebuffer import Framebuffer
from .ram import RAM
from .renderers.r_null import Renderer as NullRenderer
from .stack import Stack


class Machine:
    def __init__(self, renderer=None):
        self.ram = RAM()
        self.ram.resize(MEM_SIZE)
        self.stack = Stack(STACK_SIZE)
        self.framebuffer = Framebuffer(NullRenderer() if renderer is None else renderer)
        self.v = memoryview(bytearray(NUM_REGISTERS))
        self.keys = [False] * NUM_KEYS
        self.reset()

    def reset(self):
        self.ram.clear()
        self.ram.write_block(FONT_LOCATION, SYSTEM_FONT)
        self.v[:] = bytes(NUM_REGISTERS)
        self.i = 0
        self.pc = PROGRAM_START
        self.stack.clear()
        self.dt = 0  # Delay timer
        self.st = 0  # Sound timer
        self.framebuffer.clear()
        self.keys[:] = [False] * NUM_KEYS

        # Fx0A suspension: target register, and keys already down when the wait started
        self.awaiting_key = False
        self.key_register = 0
        self.held_keys = set()

    def load_program(self, data, offset=PROGRAM_START):
        if offset < PROGRAM_START or offset > MEM_TOP:
            raise OutOfBounds("Program load address 0x{:x} is outside program memory".format(offset))

        if offset + len(data) > MEM_SIZE:
            raise ProgramTooLarge(
                "Program is {} bytes, but only {} bytes are free from 0x{:03x}".format(
                    len(data), MEM_SIZE - offset, offset
                )
            )

        self.ram.write_block(offset, data)

    # Registers

    def _check_register(self, reg):
        if not 0 <= reg < NUM_REGISTERS:
            raise OutOfBounds("Register V{:x} does not exist".format(reg))

    def get_register(self, reg):
        self._check_register(reg)
        return self.v[reg]

    def set_register(self, reg, value):
        self._check_register(reg)
        self.v[reg] = _check_byte(value)

    # Memory

    def read_memory(self, location):
        return self.ram.read(location)

    def write_memory(self, location, value):
        self.ram.write(location, value)

    # Program counter, index register, and stack

    def set_pc(self, location):
        self.ram.check_overflow(location)

        if location & 1:
            raise OutOfBounds("Program counter 0x{:03x} is not instruction-aligned".format(location))

        self.pc = location

    def set_index(self, location):
        self.ram.check_overflow(location)
        self.i = location

    def push(self, location):
        self.ram.check_overflow(location)
        self.stack.push(location)

    def pop(self):
        return self.stack.pop()

    def stack_depth(self):
        return self.stack.depth()

    # Timers

    def set_delay_timer(self, value):
        self.dt = _check_byte(value)

    def set_sound_timer(self, value):
        self.st = _check_byte(value)

    def sound_active(self):
        # A nonzero sound timer means the tone should be playing
        return self.st > 0

    # Display

    def get_pixel(self, x, y):
        return self.framebuffer.get_pixel(x, y)

    def display_snapshot(self):
        return self.framebuffer.snapshot()

    # Keys.  Written by the host once per cycle, read-only to the CPU.

    def _check_key(self, key):
        if not 0 <= key < NUM_KEYS:
            raise OutOfBounds("Key 0x{:x} does not exist".format(key))

    def set_key(self, key, down):
        self._check_key(key)
        self.keys[key] = bool(down)

    def set_keys(self, states):
        if len(states) != NUM_KEYS:
            raise OutOfBounds("Expected {} key states, got {}".format(NUM_KEYS, len(states)))

        self.keys[:] = [bool(state) for state in states]

    def is_key_down(self, key):
        self._check_key(key)
        return self.keys[key]

    def cancel_key_wait(self):
        # Lets the host abort a pending Fx0A (e.g. on shutdown).  PC is left on the waiting instruction.
        self.awaiting_key = False
        self.held_keys.clear()


def _check_byte(value):
    if not 0 <= value <= 0xFF:
        raise OutOfBounds("Value 0x{:x} does not fit in a byte".format(value))

    return value
