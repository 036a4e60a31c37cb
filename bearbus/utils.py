# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
from enum import IntEnum, IntFlag

HEADER_PREFIX = (0xFF, 0xFF)
BROADCAST_ID = 0xFE


class Instructions(IntEnum):
    """Instruction types for BEAR command packets."""

    Ping = 0x01
    ReadStatus = 0x02
    WriteStatus = 0x03
    ReadConfig = 0x04
    WriteConfig = 0x05
    SaveConfig = 0x06
    BulkComm = 0x12


class ErrorFlags(IntFlag):
    """Bits of the error byte a motor returns in every status packet.

    COMMUNICATION and OVERHEAT are warnings: the instruction was still executed.
    Every other bit means the instruction could not be trusted.
    """

    COMMUNICATION = 1 << 0
    OVERHEAT = 1 << 1
    ABSOLUTE_POSITION = 1 << 2
    WATCHDOG_ESTOP = 1 << 3
    JOINT_LIMIT = 1 << 4
    HARDWARE = 1 << 5
    INITIALIZATION = 1 << 6

    def __str__(self):
        names = [flag.name for flag in ErrorFlags if flag in self]
        return ' | '.join(names) if names else 'ok'


ALL_FLAGS = ErrorFlags(0x7F)
WARNING_FLAGS = ErrorFlags.COMMUNICATION | ErrorFlags.OVERHEAT
ERROR_FLAGS = ErrorFlags(ALL_FLAGS ^ WARNING_FLAGS)


def calculate_checksum(data):
    """Checksum over the id, length, instruction and parameter bytes.

    Args:
        data: An iterable of byte values

    Returns:
        An integer in [0, 255] such that (sum(data) + checksum) % 256 == 255
    """
    return 255 - sum(data) % 256
