# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
"""Exceptions raised by BEAR bus interface code.

The hierarchy lets a caller tell apart a local mistake (buffer too small,
read-only register), line trouble that is safe to retry (CommError,
InvalidMessage) and a fault reported by the motor itself (MotorError).
"""

from .utils import ERROR_FLAGS


class BearError(Exception):
    """Base class for every error raised by the bus."""


class BufferTooSmallError(BearError):
    """The buffer is too small to hold the entire message."""

    def __init__(self, required_size, total_size):
        super(BufferTooSmallError, self).__init__(
            'buffer is too small: need {} bytes, but the size is {}'.format(required_size, total_size))
        self.required_size = required_size
        self.total_size = total_size

    @classmethod
    def check(cls, required_size, total_size):
        """Raise if total_size cannot hold required_size bytes."""
        if required_size > total_size:
            raise cls(required_size, total_size)


class ReadOnlyRegister(BearError):
    """The register has no write instruction."""


class CommError(BearError):
    """The serial port failed. The original exception is kept in `error`."""

    operation = 'communicate'

    def __init__(self, error):
        super(CommError, self).__init__('failed to {}: {}'.format(self.operation, error))
        self.error = error


class DiscardBufferError(CommError):
    """Failed to discard the input buffer before writing an instruction.

    Nothing was sent to the motor.
    """

    operation = 'discard input buffer'


class WriteError(CommError):
    """Failed to write the instruction."""

    operation = 'write instruction'


class ReadError(CommError):
    """Failed to read from the serial port."""

    operation = 'read response'


class ReadTimeout(ReadError):
    """The deadline passed before a complete response arrived."""

    operation = 'read response before deadline'


class InvalidMessage(BearError):
    """The received message is not valid."""


class InvalidChecksum(InvalidMessage):

    def __init__(self, message, computed):
        super(InvalidChecksum, self).__init__(
            'invalid checksum, message claims 0x{:02X}, computed 0x{:02X}'.format(message, computed))
        self.message = message
        self.computed = computed


class InvalidPacketId(InvalidMessage):

    def __init__(self, actual, expected=None):
        if expected is None:
            text = 'invalid packet ID: 0x{:02X}'.format(actual)
        else:
            text = 'invalid packet ID, expected 0x{:02X}, got 0x{:02X}'.format(expected, actual)
        super(InvalidPacketId, self).__init__(text)
        self.actual = actual
        self.expected = expected

    @classmethod
    def check(cls, actual, expected):
        if actual != expected:
            raise cls(actual, expected)


class ExpectedCount(object):
    """Expected number of parameters: exactly, at most or at least `count`."""

    EXACT = 'exactly'
    MAX = 'at most'
    MIN = 'at least'

    def __init__(self, kind, count):
        self.kind = kind
        self.count = count

    def __eq__(self, other):
        if not isinstance(other, ExpectedCount):
            return NotImplemented
        return (self.kind, self.count) == (other.kind, other.count)

    def __repr__(self):
        return 'ExpectedCount({!r}, {})'.format(self.kind, self.count)

    def __str__(self):
        return '{} {}'.format(self.kind, self.count)


class InvalidParameterCount(InvalidMessage):

    def __init__(self, actual, expected):
        super(InvalidParameterCount, self).__init__(
            'invalid parameter count, expected {}, got {}'.format(expected, actual))
        self.actual = actual
        self.expected = expected

    @classmethod
    def check(cls, actual, expected):
        if actual != expected:
            raise cls(actual, ExpectedCount(ExpectedCount.EXACT, expected))

    @classmethod
    def check_max(cls, actual, maximum):
        if actual > maximum:
            raise cls(actual, ExpectedCount(ExpectedCount.MAX, maximum))

    @classmethod
    def check_min(cls, actual, minimum):
        if actual < minimum:
            raise cls(actual, ExpectedCount(ExpectedCount.MIN, minimum))


class MotorError(BearError):
    """The motor reported an error instead of a valid response.

    Not raised for the warning flags (communication, overheat): the
    instruction has still been executed and the flags show up in
    Response.warning instead.
    """

    def __init__(self, flags):
        super(MotorError, self).__init__('motor reported an error: {}'.format(str(flags)))
        self.flags = flags

    @classmethod
    def check(cls, flags):
        if flags & ERROR_FLAGS:
            raise cls(flags)
