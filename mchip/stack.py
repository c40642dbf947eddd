#!/usr/bin/env python3

"""
Stack Emulator

There is no specified location for the call stack in system RAM, and the stack
pointer is never exposed to the running program, so a wrapped list is enough
to fully (and quickly) emulate it.  The list length doubles as the stack
pointer.

Overflowing or underflowing the stack is always a fault.  It is never wrapped.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .errors import StackOverflow, StackUnderflow


class Stack:
    def __init__(self, size):
        self.items = []
        self.size = size

    def push(self, item):
        if len(self.items) >= self.size:
            raise StackOverflow("Stack overflow (more than {} nested calls)".format(self.size))

        self.items.append(item)

    def pop(self):
        try:
            return self.items.pop()
        except IndexError:
            raise StackUnderflow("Stack underflow (return with no call)") from None

    def depth(self):
        return len(self.items)

    def clear(self):
        self.items.clear()

    def get_items(self):
        # For debugging
        return self.items
