# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
"""
In-memory serial ports and a simulated motor, for running a bus without hardware.

MockSerialPort keeps two queues:

    input: bytes that are readable right now (stale bytes go here via feed())
    replies: bytes that become readable after the next write (queue_reply())

so a scripted reply survives the input discard every instruction starts with.
With a MotorSimulator as responder, replies are generated from the packets
the bus writes.
"""

import asyncio
import time

from .bear_packet import (HEADER_SIZE, PACKET_ID, PACKET_INSTRUCTION, PACKET_LEN, PACKET_PARAMS,
                          as_instruction_packet)
from .bear_registers import CONFIG, STATUS
from .bear_serial import SerialPort
from .utils import BROADCAST_ID, ErrorFlags, Instructions


def status_packet(motor_id, error=0, params=b''):
    """Builds the status reply a motor would send."""
    return bytes(as_instruction_packet(motor_id, int(error), *params))


class MotorSimulator(object):
    """A simulated motor answering instruction packets.

    Attributes:
        motor_id: An integer, the id the simulator answers to
        config: A dict of config register values by name
        status: A dict of status register values by name
        saved_config: The config values as of the last SaveConfig
        error: ErrorFlags put in every reply
        ping_data: 4 bytes returned by Ping
    """

    def __init__(self, motor_id=1, error=ErrorFlags(0), ping_data=b'\x00\x01\x02\x03'):
        self.motor_id = motor_id
        self.error = error
        self.ping_data = ping_data
        self.config = {reg.name: 0 for reg in CONFIG}
        self.config['id'] = motor_id
        self.status = {reg.name: 0 for reg in STATUS}
        self.saved_config = dict(self.config)
        self.instructions = []

    def _table(self, instruction):
        if instruction in (Instructions.ReadConfig, Instructions.WriteConfig):
            return CONFIG, self.config
        return STATUS, self.status

    def _write_entries(self, table, values, params):
        if len(params) == 0:
            return
        width = table.by_address(params[0]).width
        if len(params) == 1 + width:
            entries = [(params[0], params[1:])]
        else:
            entries = [(params[i], params[i + 1:i + 5]) for i in range(0, len(params), 5)]
        for address, data in entries:
            reg = table.by_address(address)
            values[reg.name] = reg.decode(data)

    def respond(self, packet):
        """Returns the reply bytes to an instruction packet, or b'' for no reply."""
        motor_id = packet[PACKET_ID]
        if motor_id not in (self.motor_id, BROADCAST_ID):
            return b''
        instruction = Instructions(packet[PACKET_INSTRUCTION])
        params = bytes(packet[PACKET_PARAMS:HEADER_SIZE + packet[PACKET_LEN] - 1])
        self.instructions.append(instruction)

        if instruction == Instructions.Ping:
            reply = self.ping_data
        elif instruction in (Instructions.ReadConfig, Instructions.ReadStatus):
            table, values = self._table(instruction)
            reg = table.by_address(params[0])
            reply = reg.encode_bytes(values[reg.name])
        elif instruction in (Instructions.WriteConfig, Instructions.WriteStatus):
            table, values = self._table(instruction)
            self._write_entries(table, values, params)
            reply = b''
        elif instruction == Instructions.SaveConfig:
            self.saved_config = dict(self.config)
            return b''
        else:
            return b''
        if motor_id == BROADCAST_ID:
            return b''
        return status_packet(self.motor_id, self.error, reply)


class MockSerialPort(SerialPort):
    """Blocking in-memory serial port.

    Attributes:
        written: A list of every packet written, as bytes
        discard_error: None or an exception raised by discard_input_buffer()
        write_error: None or an exception raised by write_all()
        read_error: None or an exception raised by read()
        chunk_size: None, or the largest number of bytes a single read returns
    """

    def __init__(self, baudrate=8000000, responder=None, chunk_size=None):
        self.baudrate = baudrate
        self.responder = responder
        self.chunk_size = chunk_size
        self.input = bytearray()
        self.replies = bytearray()
        self.written = []
        self.discards = 0
        self.discard_error = None
        self.write_error = None
        self.read_error = None
        self.closed = False

    def feed(self, data):
        """Make data readable immediately."""
        self.input.extend(data)

    def queue_reply(self, data):
        """Make data readable after the next write."""
        self.replies.extend(data)

    def baud_rate(self):
        return self.baudrate

    def set_baud_rate(self, baud_rate):
        self.baudrate = baud_rate

    def discard_input_buffer(self):
        if self.discard_error is not None:
            raise self.discard_error
        self.discards += 1
        del self.input[:]

    def _write(self, data):
        if self.write_error is not None:
            raise self.write_error
        data = bytes(data)
        self.written.append(data)
        self.input.extend(self.replies)
        del self.replies[:]
        if self.responder is not None:
            self.input.extend(self.responder.respond(data))

    def _read(self, buffer):
        n = min(len(self.input), len(buffer))
        if self.chunk_size is not None:
            n = min(n, self.chunk_size)
        buffer[:n] = self.input[:n]
        del self.input[:n]
        return n

    def read(self, buffer, deadline):
        if self.read_error is not None:
            raise self.read_error
        if not self.input:
            delay = deadline - time.monotonic()
            if delay > 0:
                time.sleep(delay)
            raise TimeoutError('serial read timed out')
        return self._read(buffer)

    def write_all(self, data):
        self._write(data)

    def close(self):
        self.closed = True


class AsyncMockSerialPort(MockSerialPort):
    """MockSerialPort for the asyncio bus. read and write_all are coroutines."""

    async def read(self, buffer, deadline):
        if self.read_error is not None:
            raise self.read_error
        if not self.input:
            delay = deadline - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            raise TimeoutError('serial read timed out')
        await asyncio.sleep(0)
        return self._read(buffer)

    async def write_all(self, data):
        await asyncio.sleep(0)
        self._write(data)

