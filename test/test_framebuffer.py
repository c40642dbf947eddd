#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import unittest
from mchip.errors import OutOfBounds
from mchip.framebuffer import Framebuffer
from mchip.renderers.r_null import Renderer


class RecordingRenderer(Renderer):
    def __init__(self):
        self.pixels = {}
        self.refreshes = []
        super().__init__()

    def set_pixel(self, x, y, lit):
        self.pixels[(x, y)] = lit

    def refresh_display(self, content_changed=False):
        self.refreshes.append(content_changed)


class TestFrameBuffer(unittest.TestCase):
    def setUp(self):
        self.renderer = RecordingRenderer()
        self.framebuffer = Framebuffer(self.renderer, vid_width=4, vid_height=5)

    def test_framebuffer_init(self):
        self.assertEqual((4, 5), (self.renderer.width, self.renderer.height))
        self.assertEqual((4, 5), self.framebuffer.get_vid_size())
        self.assertEqual("0" * 40, self.framebuffer.plane.mem.hex())
        self.assertTrue(self.renderer.title.endswith("0 FPS, 0 OPS"))

    def test_framebuffer_default_size(self):
        framebuffer = Framebuffer(Renderer())
        self.assertEqual((64, 32), framebuffer.get_vid_size())
        snapshot = framebuffer.snapshot()
        self.assertEqual(32, len(snapshot))
        self.assertEqual(64, len(snapshot[0]))

    def test_framebuffer_writes(self):
        fb = self.framebuffer
        self.assertFalse(fb.xor_pixel(0, 0))
        self.assertEqual("0100000000000000000000000000000000000000", fb.plane.mem.hex())
        self.assertFalse(fb.xor_pixel(1, 1))
        self.assertEqual("0100000000010000000000000000000000000000", fb.plane.mem.hex())
        self.assertTrue(fb.get_pixel(1, 1))
        self.assertTrue(self.renderer.pixels[(1, 1)])

        # Switching a lit pixel off is a collision
        self.assertTrue(fb.xor_pixel(1, 1))
        self.assertFalse(fb.get_pixel(1, 1))
        self.assertFalse(self.renderer.pixels[(1, 1)])

    def test_framebuffer_column_wrap(self):
        fb = self.framebuffer
        fb.xor_pixel(5, 2)  # Wraps to column 1
        self.assertTrue(fb.get_pixel(1, 2))

    def test_framebuffer_row_clip(self):
        fb = self.framebuffer
        self.assertIsNone(fb.xor_pixel(0, 5))
        self.assertEqual("0" * 40, fb.plane.mem.hex())

    def test_framebuffer_clear(self):
        fb = self.framebuffer
        fb.xor_pixel(0, 0)
        fb.xor_pixel(3, 4)
        fb.clear()
        self.assertEqual("0" * 40, fb.plane.mem.hex())
        self.assertFalse(self.renderer.pixels[(0, 0)])
        self.assertFalse(self.renderer.pixels[(3, 4)])

    def test_framebuffer_snapshot(self):
        fb = self.framebuffer
        fb.xor_pixel(2, 3)
        snapshot = fb.snapshot()
        self.assertEqual(5, len(snapshot))
        self.assertEqual((False, False, True, False), snapshot[3])
        self.assertEqual(1, sum(pixel for row in snapshot for pixel in row))

        # The snapshot is a copy, not a live view
        fb.xor_pixel(2, 3)
        self.assertTrue(snapshot[3][2])

    def test_framebuffer_get_pixel_bounds(self):
        self.assertRaises(OutOfBounds, self.framebuffer.get_pixel, 4, 0)
        self.assertRaises(OutOfBounds, self.framebuffer.get_pixel, 0, 5)

    def test_framebuffer_refresh(self):
        fb = self.framebuffer
        fb.refresh_display()
        fb.xor_pixel(0, 0)
        fb.refresh_display()
        fb.refresh_display()
        self.assertEqual([False, True, False], self.renderer.refreshes)

    def test_framebuffer_report_perf(self):
        self.framebuffer.report_perf(60, 700)
        self.assertTrue(self.renderer.title.endswith("60 FPS, 700 OPS"))
