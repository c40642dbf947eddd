#!/usr/bin/env python3

"""
Framebuffer Emulator

Pixels are written here, and are usually only drawn to the actual display (the
host rendering system) at 60Hz.  Keeping a framebuffer means the engine never
relies on a rendering framework supporting specific drawing methods, and
PyGame/Curses are never called tens of thousands of times a second.

Programs for this system cannot write directly into video RAM.  Instead,
sprites are drawn to the screen using an XOR method.  The buffer is a single
monochrome 64x32 plane, one byte per pixel (0 = off, 1 = on).

Collisions (where any pixel was set, but was unset by an XOR) are reported
back to the caller.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import APP_NAME, VID_WIDTH, VID_HEIGHT
from .errors import OutOfBounds
from .ram import RAM


class Framebuffer():
    def __init__(self, renderer, vid_width=VID_WIDTH, vid_height=VID_HEIGHT):
        self.renderer = renderer
        self.vid_width = vid_width
        self.vid_height = vid_height
        self.vid_size = vid_width * vid_height
        self.plane = RAM()
        self.plane.resize(self.vid_size)
        self.content_changed = False
        self.renderer.set_resolution(vid_width, vid_height)
        self.report_perf()

    def clear(self):
        plane = self.plane
        vid_width = self.vid_width

        # Only lit pixels need to be pushed to the renderer
        for vram_loc in range(self.vid_size):
            if plane.mem[vram_loc]:
                y, x = divmod(vram_loc, vid_width)
                self.renderer.set_pixel(x, y, False)

        plane.clear()
        self.content_changed = True

    def xor_pixel(self, x, y):
        # Columns wrap around the screen edge, rows past the bottom are clipped.  Returns None if clipped, otherwise
        # whether the pixel collided (was switched off).
        x %= self.vid_width

        if y >= self.vid_height:
            return None

        vram_loc = y * self.vid_width + x
        pixel = self.plane.mem[vram_loc] ^ 1
        self.plane.mem[vram_loc] = pixel
        self.renderer.set_pixel(x, y, bool(pixel))
        self.content_changed = True

        return pixel == 0

    def get_pixel(self, x, y):
        if not (0 <= x < self.vid_width and 0 <= y < self.vid_height):
            raise OutOfBounds("Pixel ({}, {}) is off screen".format(x, y))

        return bool(self.plane.mem[y * self.vid_width + x])

    def snapshot(self):
        # Read-only copy of the screen, as rows of booleans
        mem = self.plane.mem
        vid_width = self.vid_width

        return tuple(
            tuple(bool(pixel) for pixel in mem[row * vid_width:(row + 1) * vid_width])
            for row in range(self.vid_height)
        )

    def refresh_display(self):
        self.renderer.refresh_display(self.content_changed)
        self.content_changed = False

    def get_vid_size(self):
        return self.vid_width, self.vid_height

    def report_perf(self, fps=0, ops=0):
        title = "{} - {} FPS, {} OPS".format(APP_NAME, fps, ops)
        self.renderer.set_title(title)
