# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
"""
asyncio bus for BEAR motors.

Same operations as bear_bus.Bus, as coroutines:

    bus = AsyncBus.open('/dev/ttyUSB0', 8000000)
    await bus.ping(1)
    await bus.write(1, CONFIG['p_gain_pos'], 5.0)

Control returns to the event loop only while the port writes or waits for
input. Framing and validation are the same code the blocking bus runs.
"""

from .bear_exceptions import DiscardBufferError, WriteError
from .bear_bus import PING_RESPONSE_PARAMETERS, BusBase, encode_address, encode_data
from .bear_serial import AsyncPySerialPort
from .utils import BROADCAST_ID, Instructions


class AsyncBus(BusBase):
    """Bus whose port has coroutine read() and write_all() methods."""

    @classmethod
    def open(cls, port_str, baud_rate, poll_interval=0.0002, **kwargs):
        port = AsyncPySerialPort.open(port_str, baud_rate, poll_interval=poll_interval)
        return cls(port, baud_rate=baud_rate, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    async def write_packet(self, motor_id, instruction, parameter_count, encode_parameters=None):
        packet = self._prepare_write(motor_id, instruction, parameter_count, encode_parameters)
        try:
            self.port.discard_input_buffer()
        except OSError as e:
            raise DiscardBufferError(e) from e
        try:
            await self.port.write_all(packet)
        except OSError as e:
            raise WriteError(e) from e

    async def read_packet(self, deadline):
        while True:
            message_len = self._reader.poll()
            if message_len is not None:
                break
            try:
                n = await self.port.read(self._reader.unfilled(), deadline)
            except OSError as e:
                raise self._read_failed(e) from e
            self._reader.commit(n)
        return self._reader.take_packet(message_len)

    async def read_response(self, expected_parameters, expected_id=None):
        deadline = self.port.make_deadline(self.response_timeout(expected_parameters))
        packet = await self.read_packet(deadline)
        return self.make_response(packet, expected_id)

    async def transfer_single(self, motor_id, instruction, parameter_count, expected_response_parameters,
                              encode_parameters=None):
        await self.write_packet(motor_id, instruction, parameter_count, encode_parameters)
        if motor_id == BROADCAST_ID:
            return None
        return await self.read_response(expected_response_parameters, expected_id=motor_id)

    async def ping(self, motor_id):
        self._check_addressable(motor_id)
        return await self.transfer_single(motor_id, Instructions.Ping, 0, PING_RESPONSE_PARAMETERS)

    async def read(self, motor_id, reg):
        self._check_addressable(motor_id)
        response = await self.transfer_single(motor_id, *self._read_request(reg))
        return self._decode(reg, response)

    async def write(self, motor_id, reg, value):
        return await self.transfer_single(motor_id, *self._write_request(reg, value))

    async def multi_write(self, motor_id, entries):
        return await self.transfer_single(motor_id, *self._multi_write_request(entries))

    async def save_config(self, motor_id):
        await self.write_packet(motor_id, Instructions.SaveConfig, 0)

    async def read_raw(self, motor_id, instruction, address, length):
        self._check_addressable(motor_id)
        return await self.transfer_single(motor_id, instruction, 1, length, encode_address(address))

    async def write_raw(self, motor_id, instruction, address, data):
        await self.write_packet(motor_id, instruction, len(data) + 1, encode_data(address, data))
