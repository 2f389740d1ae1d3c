"""
CHIP-8 system constants.
Sizes, load address, font set and timing shared by every component.
"""

# CHIP-8 System Constants
MEMORY_SIZE = 4096
ADDRESS_MASK = MEMORY_SIZE - 1
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
REGISTER_COUNT = 16
FLAG_REGISTER = 0xF
STACK_SIZE = 16
KEYPAD_SIZE = 16
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START  # 3584 bytes
FONT_START = 0x000
FONT_GLYPH_SIZE = 5
SPRITE_WIDTH = 8

# Timing
DEFAULT_CYCLES_PER_SECOND = 700
TIMER_HZ = 60
DEFAULT_SCALE = 10

# CHIP-8 Font set (hexadecimal digits 0-F), 4x5 pixels each
CHIP8_FONT = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])
FONT_SIZE = len(CHIP8_FONT)

# CHIP-8 keypad mapping to keyboard keys
# Original CHIP-8 keypad:     Modern keyboard mapping:
# 1 2 3 C                     1 2 3 4
# 4 5 6 D          =>         Q W E R
# 7 8 9 E                     A S D F
# A 0 B F                     Z X C V
KEY_MAPPING = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}
