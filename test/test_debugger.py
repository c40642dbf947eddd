#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import unittest
from mchip.debugger import Debugger
from mchip.machine import Machine


class TestDebugger(unittest.TestCase):
    def setUp(self):
        self.debugger = Debugger()
        self.machine = Machine()

    def test_debugger_live(self):
        self.assertFalse(self.debugger.is_live())
        self.debugger.set_live(True)
        self.assertTrue(self.debugger.is_live())

    def test_debugger_debug(self):
        self.machine.v[0xF] = 0x12
        self.machine.v[0x0] = 0x34
        self.machine.i = 0xABC
        self.machine.dt = 0x05
        self.machine.st = 0x06
        debug_str = self.debugger.debug(self.machine, "CLS", 0x200, 0x00E0)
        self.assertEqual(
            "V: 0x12" + "00" * 14 + "34 I: 0xabc DT: 0x05 ST: 0x06 PC: 0x200 OP: 0x00e0 IN: CLS",
            debug_str
        )

    def test_debugger_debug_verbose(self):
        self.machine.push(0x202)
        self.machine.push(0x30A)
        debug_str = self.debugger.debug(self.machine, "RET", 0x400, 0x00EE, verbose=True)
        self.assertTrue(debug_str.endswith("\nStack: 0x202 0x30a"))
