#!/usr/bin/env python3

"""
CPU Emulator (CHIP-8)

Like a real computer, this is where most of the processing happens.  Each call
to step() runs exactly one fetch-decode-execute cycle against a Machine.  The
CPU has no idea what time it is: the host decides how often to step, and calls
tick_timers() at 60Hz on its own clock.

Decoding splits the instruction word into an Instruction tuple.  The opcode is
then masked according to its class (first nibble) and looked up in a dispatch
table, so instructions sharing a class (0x0, 0x5, 0x8, 0x9, 0xE and 0xF) are
told apart by their low nibble or byte.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from collections import namedtuple
from random import Random
from .constants import APP_INTRO, ADDR_MASK, FONT_LOCATION, FONT_GLYPH_SIZE, MEM_TOP, NUM_KEYS
from .debugger import Debugger
from .errors import OutOfBounds, UnknownOpcode

CPU_ENDIAN = "big"  # CHIP-8 is big-endian

# u = opcode class (first nibble)
# x/y = register (0-15)
# n = nibble
# kk = byte
# nnn = address
Instruction = namedtuple("Instruction", ["opcode", "u", "x", "y", "n", "kk", "nnn"])

# Masks used to pick out the dispatch key for each opcode class.  Anything not listed is keyed on its class alone.
CLASS_MASKS = {
    0x0: 0xFFFF,
    0x5: 0xF00F,
    0x8: 0xF00F,
    0x9: 0xF00F,
    0xE: 0xF0FF,
    0xF: 0xF0FF
}


def decode(opcode):
    return Instruction(
        opcode,
        (opcode & 0xF000) >> 12,
        (opcode & 0xF00) >> 8,
        (opcode & 0xF0) >> 4,
        opcode & 0xF,
        opcode & 0xFF,
        opcode & 0xFFF
    )


class CPU:
    def __init__(self, machine, debugger=None, shift_quirks=False, load_quirks=False, rng=None):
        self.machine = machine
        self.debugger = Debugger() if debugger is None else debugger
        self.live_debug = self.debugger.is_live()
        self.rng = Random() if rng is None else rng

        """
        Quirks
        ------

        - Shift quirks: SHR/SHL shift Vy into Vx, as on the original COSMAC VIP.  Off by default (Vx shifted in
                        place).
        - Load quirks : Fx55/Fx65 leave I pointing just past the last register copied, as on the COSMAC VIP.  Off by
                        default (I unchanged).
        """

        self.shift_quirks = bool(shift_quirks)
        self.load_quirks = bool(load_quirks)

        # Dispatch table, keyed on the class-masked opcode.  Each entry holds a mnemonic template for debug output,
        # and the handler.
        self.instructions = {
            # Class 0x0, exact match.  Anything else in this class is SYS.
            0x00E0: ("CLS", self._00E0),
            0x00EE: ("RET", self._00EE),
            0x0000: ("SYS 0x{nnn:03x}", self._0nnn),
            0x1000: ("JP 0x{nnn:03x}", self._1nnn),
            0x2000: ("CALL 0x{nnn:03x}", self._2nnn),
            0x3000: ("SE V{x:01x}, 0x{kk:02x}", self._3xkk),
            0x4000: ("SNE V{x:01x}, 0x{kk:02x}", self._4xkk),
            # Classes 0x5/0x8/0x9, bitmask 0xF00F
            0x5000: ("SE V{x:01x}, V{y:01x}", self._5xy0),
            0x6000: ("LD V{x:01x}, 0x{kk:02x}", self._6xkk),
            0x7000: ("ADD V{x:01x}, 0x{kk:02x}", self._7xkk),
            0x8000: ("LD V{x:01x}, V{y:01x}", self._8xy0),
            0x8001: ("OR V{x:01x}, V{y:01x}", self._8xy1),
            0x8002: ("AND V{x:01x}, V{y:01x}", self._8xy2),
            0x8003: ("XOR V{x:01x}, V{y:01x}", self._8xy3),
            0x8004: ("ADD V{x:01x}, V{y:01x}", self._8xy4),
            0x8005: ("SUB V{x:01x}, V{y:01x}", self._8xy5),
            0x8006: ("SHR V{x:01x}, V{y:01x}" if self.shift_quirks else "SHR V{x:01x}", self._8xy6),
            0x8007: ("SUBN V{x:01x}, V{y:01x}", self._8xy7),
            0x800E: ("SHL V{x:01x}, V{y:01x}" if self.shift_quirks else "SHL V{x:01x}", self._8xyE),
            0x9000: ("SNE V{x:01x}, V{y:01x}", self._9xy0),
            0xA000: ("LD I, 0x{nnn:03x}", self._Annn),
            0xB000: ("JP V0, 0x{nnn:03x}", self._Bnnn),
            0xC000: ("RND V{x:01x}, 0x{kk:02x}", self._Cxkk),
            0xD000: ("DRW V{x:01x}, V{y:01x}, 0x{n:01x}", self._Dxyn),
            # Classes 0xE/0xF, bitmask 0xF0FF
            0xE09E: ("SKP V{x:01x}", self._Ex9E),
            0xE0A1: ("SKNP V{x:01x}", self._ExA1),
            0xF007: ("LD V{x:01x}, DT", self._Fx07),
            0xF00A: ("LD V{x:01x}, K", self._Fx0A),
            0xF015: ("LD DT, V{x:01x}", self._Fx15),
            0xF018: ("LD ST, V{x:01x}", self._Fx18),
            0xF01E: ("ADD I, V{x:01x}", self._Fx1E),
            0xF029: ("LD F, V{x:01x}", self._Fx29),
            0xF033: ("LD B, V{x:01x}", self._Fx33),
            0xF055: ("LD [I], V{x:01x}", self._Fx55),
            0xF065: ("LD V{x:01x}, [I]", self._Fx65)
        }

        self.opcode = 0
        self.debug_pc = 0

    def step(self):
        # One fetch-decode-execute cycle.  Returns the instruction executed, or None if still waiting for a key.
        machine = self.machine

        if machine.awaiting_key:
            self._poll_keypress()
            return None

        # Keep track of the program counter before altering it in any way for debugging purposes
        self.debug_pc = machine.pc
        self.opcode = self.fetch()
        self.inc_pc()  # Program counter updates after fetch, but before execute
        instruction = decode(self.opcode)
        self.execute(instruction)

        return instruction

    def tick_timers(self):
        # Called by the host at 60Hz, however quickly instructions are being executed
        machine = self.machine

        if machine.dt > 0:
            machine.dt -= 1

        if machine.st > 0:
            machine.st -= 1

    def fetch(self):
        pc = self.machine.pc

        if pc & 1 or pc + 1 > MEM_TOP:
            raise OutOfBounds("Cannot fetch an instruction from 0x{:03x}".format(pc))

        return int.from_bytes(self.machine.ram.read_block(pc, 2), CPU_ENDIAN, signed=False)

    def lookup(self, instruction):
        # Returns the (mnemonic, handler) pair for a decoded instruction
        u = instruction.u
        entry = self.instructions.get(instruction.opcode & CLASS_MASKS.get(u, 0xF000))

        if entry is None:
            if u == 0x0:
                # Machine code routines on the original hardware.  Not emulated, so treated as no-ops.
                return self.instructions[0x0000]

            self._opcode_unsupported(instruction.opcode)

        return entry

    def execute(self, instruction):
        mnemonic, handler = self.lookup(instruction)

        if self.live_debug:
            self.debugger.output(self.machine, mnemonic.format(**instruction._asdict()), self.debug_pc, self.opcode)

        handler(instruction)

    def inc_pc(self):
        self.machine.pc = (self.machine.pc + 2) & ADDR_MASK

    def dec_pc(self):
        # Only used to hold on an instruction (keypress wait)
        self.machine.pc = (self.machine.pc - 2) & ADDR_MASK

    def _opcode_unsupported(self, opcode):
        raise UnknownOpcode(
            (
                "Emulation halted.\n\n" +
                "{}Debug info:\n" +
                "{}\n\nOpcode 0x{:04x} at address 0x{:03x} is not a CHIP-8 instruction."
            ).format(
                APP_INTRO, self.debugger.debug(self.machine, "???", self.debug_pc, opcode, verbose=True), opcode,
                self.debug_pc
            ),
            opcode=opcode,
            address=self.debug_pc
        ) from None

    def _poll_keypress(self):
        # Only keys pressed after the wait started count.  Keys already held have to be released first.
        machine = self.machine
        held_keys = machine.held_keys
        keys = machine.keys

        for key in range(NUM_KEYS):
            if not keys[key]:
                held_keys.discard(key)
            elif key not in held_keys:
                machine.v[machine.key_register] = key
                machine.awaiting_key = False
                held_keys.clear()
                self.inc_pc()
                return

    def _skip(self):
        self.inc_pc()

    def _0nnn(self, ins):  # SYS addr
        pass

    def _00E0(self, ins):  # CLS
        self.machine.framebuffer.clear()

    def _00EE(self, ins):  # RET
        self.machine.pc = self.machine.stack.pop()

    def _1nnn(self, ins):  # JP addr
        self.machine.pc = ins.nnn

    def _2nnn(self, ins):  # CALL addr
        self.machine.stack.push(self.machine.pc)
        self.machine.pc = ins.nnn

    def _3xkk(self, ins):  # SE Vx, byte
        if self.machine.v[ins.x] == ins.kk:
            self._skip()

    def _4xkk(self, ins):  # SNE Vx, byte
        if self.machine.v[ins.x] != ins.kk:
            self._skip()

    def _5xy0(self, ins):  # SE Vx, Vy
        v = self.machine.v

        if v[ins.x] == v[ins.y]:
            self._skip()

    def _6xkk(self, ins):  # LD Vx, byte
        self.machine.v[ins.x] = ins.kk

    def _7xkk(self, ins):  # ADD Vx, byte
        v = self.machine.v
        v[ins.x] = (v[ins.x] + ins.kk) & 0xFF  # No carry flag

    def _8xy0(self, ins):  # LD Vx, Vy
        v = self.machine.v
        v[ins.x] = v[ins.y]

    def _8xy1(self, ins):  # OR Vx, Vy
        v = self.machine.v
        v[ins.x] |= v[ins.y]

    def _8xy2(self, ins):  # AND Vx, Vy
        v = self.machine.v
        v[ins.x] &= v[ins.y]

    def _8xy3(self, ins):  # XOR Vx, Vy
        v = self.machine.v
        v[ins.x] ^= v[ins.y]

    # Flags are always set after Vx, so that Vf ends up holding the flag when it is also the target

    def _8xy4(self, ins):  # ADD Vx, Vy
        v = self.machine.v
        val = v[ins.x] + v[ins.y]
        v[ins.x] = val & 0xFF
        v[0xF] = int(val > 0xFF)  # Vf is set when carrying

    def _8xy5(self, ins):  # SUB Vx, Vy
        v = self.machine.v
        val = v[ins.x] - v[ins.y]
        v[ins.x] = val & 0xFF
        v[0xF] = int(val >= 0)  # Vf is set when NOT borrowing

    def _8xy6(self, ins):  # SHR Vx {, Vy}
        v = self.machine.v
        val = v[ins.y if self.shift_quirks else ins.x]
        v[ins.x] = val >> 1
        v[0xF] = val & 1

    def _8xy7(self, ins):  # SUBN Vx, Vy
        v = self.machine.v
        val = v[ins.y] - v[ins.x]
        v[ins.x] = val & 0xFF
        v[0xF] = int(val >= 0)

    def _8xyE(self, ins):  # SHL Vx {, Vy}
        v = self.machine.v
        val = v[ins.y if self.shift_quirks else ins.x]
        v[ins.x] = (val << 1) & 0xFF
        v[0xF] = val >> 7

    def _9xy0(self, ins):  # SNE Vx, Vy
        v = self.machine.v

        if v[ins.x] != v[ins.y]:
            self._skip()

    def _Annn(self, ins):  # LD I, addr
        self.machine.i = ins.nnn

    def _Bnnn(self, ins):  # JP V0, addr
        self.machine.pc = (ins.nnn + self.machine.v[0]) & ADDR_MASK

    def _Cxkk(self, ins):  # RND Vx, byte
        # The ANDing here is intentional.  This is not a random number between 0 and 'byte' inclusive.
        self.machine.v[ins.x] = self.rng.randint(0, 0xFF) & ins.kk

    def _Dxyn(self, ins):  # DRW Vx, Vy, nibble
        machine = self.machine
        ram = machine.ram
        framebuffer = machine.framebuffer
        vid_width, vid_height = framebuffer.get_vid_size()

        # The sprite's start always wraps.  After that, columns wrap and rows falling off the bottom are dropped.
        vx_pos = machine.v[ins.x] % vid_width
        vy_pos = machine.v[ins.y] % vid_height
        i = machine.i
        collided = False

        for y in range(ins.n):
            scr_y = vy_pos + y

            if scr_y >= vid_height:
                break

            spr_data = ram.read((i + y) & ADDR_MASK)

            for x in range(8):
                if spr_data & (0x80 >> x):
                    # Don't stop drawing on a collision, just remember it
                    if framebuffer.xor_pixel(vx_pos + x, scr_y):
                        collided = True

        machine.v[0xF] = int(collided)

    def _Ex9E(self, ins):  # SKP Vx
        machine = self.machine

        if machine.is_key_down(machine.v[ins.x] & 0xF):
            self._skip()

    def _ExA1(self, ins):  # SKNP Vx
        machine = self.machine

        if not machine.is_key_down(machine.v[ins.x] & 0xF):
            self._skip()

    def _Fx07(self, ins):  # LD Vx, DT
        self.machine.v[ins.x] = self.machine.dt

    def _Fx0A(self, ins):  # LD Vx, K
        # Rather than blocking, hold the program counter on this instruction and let step() poll the keys.  Timers and
        # the display carry on being serviced by the host in the meantime.
        machine = self.machine
        machine.awaiting_key = True
        machine.key_register = ins.x
        machine.held_keys = {key for key in range(NUM_KEYS) if machine.keys[key]}
        self.dec_pc()

    def _Fx15(self, ins):  # LD DT, Vx
        self.machine.dt = self.machine.v[ins.x]

    def _Fx18(self, ins):  # LD ST, Vx
        self.machine.st = self.machine.v[ins.x]

    def _Fx1E(self, ins):  # ADD I, Vx
        self.machine.i = (self.machine.i + self.machine.v[ins.x]) & ADDR_MASK

    def _Fx29(self, ins):  # LD F, Vx
        self.machine.i = FONT_LOCATION + FONT_GLYPH_SIZE * (self.machine.v[ins.x] & 0xF)

    def _Fx33(self, ins):  # LD B, Vx
        machine = self.machine
        val = machine.v[ins.x]
        i = machine.i
        machine.ram.write(i & ADDR_MASK, val // 100)               # Most-significant digit
        machine.ram.write((i + 1) & ADDR_MASK, (val // 10) % 10)  # Middle digit
        machine.ram.write((i + 2) & ADDR_MASK, val % 10)          # Least-significant digit

    def _post_Fx55_Fx65(self, ins):
        if self.load_quirks:
            self.machine.i = (self.machine.i + ins.x + 1) & ADDR_MASK

    def _Fx55(self, ins):  # LD [I], Vx
        machine = self.machine
        i = machine.i

        for reg in range(ins.x + 1):
            machine.ram.write((i + reg) & ADDR_MASK, machine.v[reg])

        self._post_Fx55_Fx65(ins)

    def _Fx65(self, ins):  # LD Vx, [I]
        machine = self.machine
        i = machine.i

        for reg in range(ins.x + 1):
            machine.v[reg] = machine.ram.read((i + reg) & ADDR_MASK)

        self._post_Fx55_Fx65(ins)
