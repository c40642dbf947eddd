#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import io
import os
import tempfile
import unittest
from unittest import mock
from minichip import parse_args
from mchip import main
from mchip.errors import OutOfBounds, ProgramTooLarge, UnknownOpcode


class TestMain(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.filename = os.path.join(self.temp_dir.name, "test.ch8")

    def tearDown(self):
        self.temp_dir.cleanup()

    def _run_rom(self, rom, *options):
        with open(self.filename, "wb") as f:
            f.write(rom)

        args = vars(parse_args([self.filename, "-r", "null", "-c", "0"] + list(options)))

        with mock.patch("sys.stdout", new_callable=io.StringIO):
            main(args)

    def test_main_parse_args_defaults(self):
        args = vars(parse_args(["game.ch8"]))
        self.assertEqual("game.ch8", args["filename"])
        self.assertIsNone(args["clock_speed"])
        self.assertIsNone(args["offset"])
        self.assertIsNone(args["renderer"])
        self.assertEqual(0, args["shift_quirks"])
        self.assertEqual(0, args["load_quirks"])
        self.assertFalse(args["debug"])

    def test_main_parse_args_offset(self):
        self.assertEqual(0x600, vars(parse_args(["game.ch8", "-o", "600"]))["offset"])

    def test_main_runs_until_fault(self):
        # Clear the screen, set V0, then hit an unknown opcode
        with self.assertRaises(UnknownOpcode) as context:
            self._run_rom(b"\x00\xE0\x60\x01\xFF\xFF")

        self.assertEqual(0x204, context.exception.address)

    def test_main_offset(self):
        with self.assertRaises(UnknownOpcode) as context:
            self._run_rom(b"\xFF\xFF", "-o", "600")

        self.assertEqual(0x600, context.exception.address)

    def test_main_rom_too_large(self):
        self.assertRaises(ProgramTooLarge, self._run_rom, b"\x00" * 0x1000)

    def test_main_bad_offset(self):
        self.assertRaises(OutOfBounds, self._run_rom, b"\x00\xE0", "-o", "100")
