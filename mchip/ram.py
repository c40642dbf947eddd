#!/usr/bin/env python3

"""
RAM Emulator

Supports reading and writing of blocks of memory or individual bytes, and fast
clearing of the whole bank.  Every access is bounds-checked: nothing here wraps
or truncates.  Callers that compute addresses arithmetically are expected to
wrap them first.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .errors import OutOfBounds


class RAM:
    def __init__(self):
        self.resize(0)

    def resize(self, mem_size):
        self.mem = memoryview(bytearray(mem_size))
        self.mem_top = mem_size - 1
        self.mem_size = mem_size

    def read(self, location):
        self.check_overflow(location)
        return self.mem[location]

    def read_block(self, location, size=1):
        self.check_overflow(location + size - 1)
        self.check_overflow(location)
        return self.mem[location:location + size]

    def write(self, location, byte):
        self.check_overflow(location)

        if not 0 <= byte <= 0xFF:
            raise OutOfBounds("Value 0x{:x} does not fit in a byte".format(byte))

        self.mem[location] = byte

    def write_block(self, location, block):
        block_top = location + len(block)
        self.check_overflow(location)
        self.check_overflow(block_top - 1)
        self.mem[location:block_top] = block

    def check_overflow(self, location):
        if location < 0 or location > self.mem_top:
            raise OutOfBounds("Memory address 0x{:x} out of range".format(location))

    def clear(self):
        self.mem[:] = bytes(self.mem_size)
