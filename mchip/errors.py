#!/usr/bin/env python3

"""
Emulator Faults

Every fault the virtual machine can raise derives from MachineError, so a host
can catch them all in one place and decide whether to halt or reset.  None of
these are retried internally.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class MachineError(Exception):
    pass


class OutOfBounds(MachineError):
    # Address, register index, or value outside its valid range
    pass


class ProgramTooLarge(MachineError):
    pass


class StackError(MachineError):
    pass


class StackOverflow(StackError):
    pass


class StackUnderflow(StackError):
    pass


class CPUError(MachineError):
    pass


class UnknownOpcode(CPUError):
    def __init__(self, message, opcode=None, address=None):
        super().__init__(message)
        self.opcode = opcode
        self.address = address
