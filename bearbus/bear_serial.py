# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
"""
Serial port interface used by the bus, and implementations over pyserial.

A port reads whatever is available into a caller supplied buffer before a
deadline, and raises TimeoutError once the deadline has passed. Deadlines are
time.monotonic() values.
"""

import asyncio
import glob
import logging
import time
from sys import platform

import serial

logger = logging.getLogger(__name__)


def find_port(patterns=None):
    """Returns the first serial device matching one of the glob patterns.

    Raises:
        IOError: if no device is found
    """
    if patterns is None:
        if platform == 'darwin':
            patterns = ['/dev/tty.usb*']
        elif platform.startswith('linux'):
            patterns = ['/dev/ttyUSB*', '/dev/ttyACM*']
        else:
            raise IOError('Unrecognized platform {}, a port must be given explicitly'.format(platform))
    for pattern in patterns:
        ports = sorted(glob.glob(pattern))
        if ports:
            return ports[0]
    raise IOError('No serial device found matching {}'.format(', '.join(patterns)))


class SerialPort(object):
    """Base class for the serial ports a bus can drive.

    Subclasses implement read/write_all as plain methods for the blocking
    bus, or as coroutines for the asyncio bus.
    """

    def baud_rate(self):
        raise NotImplementedError()

    def set_baud_rate(self, baud_rate):
        raise NotImplementedError()

    def discard_input_buffer(self):
        raise NotImplementedError()

    def read(self, buffer, deadline):
        """Read available bytes into buffer, returning the count read.

        May return 0 before the deadline. Raises TimeoutError after it.
        """
        raise NotImplementedError()

    def write_all(self, data):
        raise NotImplementedError()

    def close(self):
        pass

    @staticmethod
    def make_deadline(timeout):
        return time.monotonic() + timeout

    @staticmethod
    def is_timeout_error(error):
        return isinstance(error, TimeoutError)


class PySerialPort(SerialPort):
    """Blocking serial port.

    Usage:
        port = PySerialPort.open('/dev/ttyUSB0', 8000000)
        bus = Bus(port)
    """

    def __init__(self, handle):
        """
        Args:
            handle: An instance of serial.Serial, opened in raw mode (8N1)
        """
        self.handle = handle

    @classmethod
    def open(cls, port_str, baudrate):
        handle = serial.Serial(port=port_str, baudrate=baudrate, timeout=0)
        logger.info('opened %s at %d baud', port_str, baudrate)
        return cls(handle)

    def baud_rate(self):
        return self.handle.baudrate

    def set_baud_rate(self, baud_rate):
        self.handle.baudrate = baud_rate

    def discard_input_buffer(self):
        self.handle.reset_input_buffer()

    def read(self, buffer, deadline):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError('serial read timed out')
        waiting = self.handle.in_waiting
        if waiting:
            data = self.handle.read(min(waiting, len(buffer)))
        else:
            # Setting the timeout reconfigures the port, only do it to block for a byte.
            self.handle.timeout = remaining
            data = self.handle.read(1)
        buffer[:len(data)] = data
        return len(data)

    def write_all(self, data):
        self.handle.write(bytes(data))
        self.handle.flush()

    def close(self):
        if self.handle.is_open:
            self.handle.close()
            logger.info('closed %s', self.handle.port)


class AsyncPySerialPort(PySerialPort):
    """Serial port for the asyncio bus.

    The handle is polled without blocking; between polls control goes back to
    the event loop.

    Args:
        handle: An instance of serial.Serial
        poll_interval: A float, seconds to sleep when no byte is waiting
    """

    def __init__(self, handle, poll_interval=0.0002):
        super(AsyncPySerialPort, self).__init__(handle)
        self.poll_interval = poll_interval
        self.handle.timeout = 0

    @classmethod
    def open(cls, port_str, baudrate, poll_interval=0.0002):
        handle = serial.Serial(port=port_str, baudrate=baudrate, timeout=0)
        logger.info('opened %s at %d baud', port_str, baudrate)
        return cls(handle, poll_interval=poll_interval)

    async def read(self, buffer, deadline):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError('serial read timed out')
        waiting = self.handle.in_waiting
        if not waiting:
            await asyncio.sleep(min(self.poll_interval, remaining))
            return 0
        data = self.handle.read(min(waiting, len(buffer)))
        buffer[:len(data)] = data
        return len(data)

    async def write_all(self, data):
        data = bytes(data)
        while data:
            written = self.handle.write(data) or 0
            data = data[written:]
            if data:
                await asyncio.sleep(self.poll_interval)
        await asyncio.sleep(0)
