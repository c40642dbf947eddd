#!/usr/bin/env python3

"""
PyGame Audio Plugin

Plays the buzzer through PyGame / SDL.

The original hardware's buzzer is a single tone that is either 'on' or 'off'.
A one-cycle square wave is generated once at startup and looped for as long as
the buzzer is enabled.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import pygame
from .a_null import Audio as AudioBase

PLAYBACK_FREQUENCY = 44100
TONE_FREQUENCY = 440.0
DEFAULT_VOLUME = 0.1


def square_wave(tone_frequency, playback_frequency=PLAYBACK_FREQUENCY):
    # Unsigned 8-bit samples for exactly one cycle of the tone
    cycle_length = max(2, int(playback_frequency / tone_frequency))
    half_cycle = cycle_length // 2
    return bytes(0xFF if pos < half_cycle else 0x00 for pos in range(cycle_length))


class Audio(AudioBase):
    def __init__(self, tone_frequency=TONE_FREQUENCY):
        pygame.mixer.pre_init(PLAYBACK_FREQUENCY, size=8, channels=1, buffer=512, allowedchanges=0)
        pygame.mixer.init()
        self.sound = pygame.mixer.Sound(buffer=square_wave(tone_frequency))
        self.sound.set_volume(DEFAULT_VOLUME)
        super().__init__()

    def enable_buzzer(self, enabled):
        # Play or stop the looped tone.  A tone that is already playing won't be restarted.
        if enabled:
            if not self.buzzer_enabled:
                self.sound.play(-1)
        elif self.buzzer_enabled:
            self.sound.stop()

        super().enable_buzzer(enabled)

    def shutdown(self):
        self.sound.stop()
        pygame.mixer.quit()
        super().shutdown()
