# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
"""
Blocking bus for BEAR motors.

First open a bus:

    bus = Bus.open('/dev/ttyUSB0', 8000000)

Then read and write registers by descriptor:

    from bearbus.bear_registers import CONFIG, STATUS

    bus.ping(1)
    bus.write(1, CONFIG['p_gain_pos'], 5.0)
    min_pos = bus.read(1, CONFIG['limit_pos_min']).data
    bus.write(1, STATUS['torque_enable'], 1)

Every call is one instruction followed by at most one status reply. The bus
is not thread safe, use one bus per serial line from a single thread.
"""

import logging

from .bear_exceptions import (BufferTooSmallError, DiscardBufferError, InvalidPacketId, MotorError,
                              ReadError, ReadTimeout, WriteError)
from .bear_packet import (HEADER_SIZE, PACKET_ERROR, PACKET_ID, PACKET_PARAMS, PacketReader,
                          make_packet, message_transfer_time, packet_size)
from .bear_reg import WRITE_INSTRUCTIONS, MultiWrite, Response
from .bear_serial import PySerialPort
from .utils import ALL_FLAGS, BROADCAST_ID, HEADER_PREFIX, WARNING_FLAGS, ErrorFlags, Instructions

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 128
DEFAULT_TIMEOUT_MARGIN = 0.001
PING_RESPONSE_PARAMETERS = 4


def encode_address(address):
    """Parameter encoder for a single address byte."""
    def encode(buffer):
        buffer[0] = address
    return encode


def encode_register(reg, value):
    """Parameter encoder for an address byte followed by a register value."""
    def encode(buffer):
        buffer[0] = reg.offset
        reg.encode(value, buffer[1:])
    return encode


def encode_multi_write(entries):
    def encode(buffer):
        offset = 0
        for entry in entries:
            buffer[offset] = entry.address
            buffer[offset + 1:offset + MultiWrite.WIDTH] = entry.data
            offset += MultiWrite.WIDTH
    return encode


def encode_data(address, data):
    def encode(buffer):
        buffer[0] = address
        buffer[1:] = bytes(data)
    return encode


class BusBase(object):
    """State and packet logic shared by Bus and AsyncBus.

    Attributes:
        port: The serial port (see bear_serial.SerialPort)
        baud_rate: An integer, the baud rate used to compute read deadlines
        timeout_margin: A float, seconds added to every read deadline
    """

    def __init__(self, port, read_buffer_size=DEFAULT_BUFFER_SIZE, write_buffer_size=DEFAULT_BUFFER_SIZE,
                 baud_rate=None, timeout_margin=DEFAULT_TIMEOUT_MARGIN):
        """Inits a bus over an open serial port.

        The serial port must already be configured in raw mode with the
        correct baud rate, character size (8), parity (disabled) and stop
        bits (1).

        Args:
            port: An open serial port
            read_buffer_size: An integer, bytes available for incoming messages
            write_buffer_size: An integer, bytes available for outgoing messages
            baud_rate: None to ask the port, or the baud rate the port runs at
            timeout_margin: A float, seconds added to the computed transfer time

        Raises:
            BufferTooSmallError: if a buffer cannot hold the smallest packet
        """
        BufferTooSmallError.check(HEADER_SIZE + 3, write_buffer_size)
        self.port = port
        self.baud_rate = port.baud_rate() if baud_rate is None else baud_rate
        self.timeout_margin = timeout_margin
        self._reader = PacketReader(read_buffer_size)
        self._write_buffer = bytearray(write_buffer_size)
        self._write_buffer[:2] = bytes(HEADER_PREFIX)

    def __repr__(self):
        return '{}(port={!r}, baud_rate={})'.format(type(self).__name__, self.port, self.baud_rate)

    @property
    def read_len(self):
        return self._reader.read_len

    @property
    def used_bytes(self):
        return self._reader.used_bytes

    @property
    def skipped_bytes(self):
        """Total number of garbage bytes skipped while reading."""
        return self._reader.skipped_bytes

    def set_baud_rate(self, baud_rate):
        """Set the baud rate of the underlying serial port."""
        self.port.set_baud_rate(baud_rate)
        self.baud_rate = baud_rate
        logger.info('baud rate set to %d', baud_rate)

    def close(self):
        self.port.close()

    def response_timeout(self, expected_parameters):
        """Read timeout for a reply carrying expected_parameters parameter bytes."""
        return message_transfer_time(packet_size(expected_parameters), self.baud_rate) + self.timeout_margin

    def _prepare_write(self, motor_id, instruction, parameter_count, encode_parameters):
        """Encode an instruction and forget all buffered input.

        Encoding happens first so a bad value fails before any I/O.
        """
        packet_len = make_packet(self._write_buffer, motor_id, instruction, parameter_count, encode_parameters)
        packet = memoryview(self._write_buffer)[:packet_len]
        # Replies to an earlier instruction must not be taken for the reply to this one.
        self._reader.reset()
        logger.debug('sending packet: %s', packet.hex(' '))
        return packet

    def _read_failed(self, error):
        if self.port.is_timeout_error(error):
            return ReadTimeout(error)
        return ReadError(error)

    @staticmethod
    def _check_addressable(motor_id):
        if motor_id == BROADCAST_ID:
            raise ValueError('cannot read a reply from the broadcast id')

    @staticmethod
    def make_response(packet, expected_id=None):
        """Turns a validated packet into a Response with raw bytes as data.

        Raises:
            InvalidPacketId: if the packet comes from another motor
            MotorError: if the error byte has any of the ERROR_FLAGS set
        """
        motor_id = packet[PACKET_ID]
        raw_error = packet[PACKET_ERROR]
        if raw_error & ~int(ALL_FLAGS):
            logger.warning('motor %d set undefined error bits %#04x', motor_id, raw_error)
        flags = ErrorFlags(raw_error & int(ALL_FLAGS))
        if expected_id is not None:
            InvalidPacketId.check(motor_id, expected_id)
        MotorError.check(flags)
        warning = flags & WARNING_FLAGS
        return Response(motor_id, warning if warning else None, bytes(packet[PACKET_PARAMS:]))

    @staticmethod
    def _decode(reg, response):
        return Response(response.motor_id, response.warning, reg.decode(response.data))

    @staticmethod
    def _read_request(reg):
        return reg.read_inst, 1, reg.width, encode_address(reg.offset)

    @staticmethod
    def _write_request(reg, value):
        reg.check_writable()
        return reg.write_inst, reg.width + 1, 0, encode_register(reg, value)

    @staticmethod
    def _multi_write_request(entries):
        entries = list(entries)
        if not entries:
            raise ValueError('multi_write needs at least one entry')
        reg_types = set(entry.reg.reg_type for entry in entries)
        if len(reg_types) != 1:
            raise ValueError('multi_write entries must all be config or all be status registers')
        instruction = WRITE_INSTRUCTIONS[reg_types.pop()]
        return instruction, len(entries) * MultiWrite.WIDTH, 0, encode_multi_write(entries)


class Bus(BusBase):
    """Blocking bus. Every call blocks until the reply arrives or its deadline passes."""

    @classmethod
    def open(cls, port_str, baud_rate, **kwargs):
        """Open a serial port with the given baud rate.

        Keyword arguments are passed to the constructor (buffer sizes, timeout_margin).
        """
        return cls(PySerialPort.open(port_str, baud_rate), baud_rate=baud_rate, **kwargs)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def write_packet(self, motor_id, instruction, parameter_count, encode_parameters=None):
        """Write an instruction packet, after discarding all pending input.

        Raises:
            BufferTooSmallError: if the packet does not fit in the write buffer
            DiscardBufferError: if the pending input could not be discarded
            WriteError: if the packet could not be written
        """
        packet = self._prepare_write(motor_id, instruction, parameter_count, encode_parameters)
        try:
            self.port.discard_input_buffer()
        except OSError as e:
            raise DiscardBufferError(e) from e
        try:
            self.port.write_all(packet)
        except OSError as e:
            raise WriteError(e) from e

    def read_packet(self, deadline):
        """Read the next valid packet, without its checksum byte.

        The returned view stays valid until the next write.
        """
        while True:
            message_len = self._reader.poll()
            if message_len is not None:
                break
            try:
                n = self.port.read(self._reader.unfilled(), deadline)
            except OSError as e:
                raise self._read_failed(e) from e
            self._reader.commit(n)
        return self._reader.take_packet(message_len)

    def read_response(self, expected_parameters, expected_id=None):
        """Read one status reply and return it as a Response with raw bytes as data."""
        deadline = self.port.make_deadline(self.response_timeout(expected_parameters))
        packet = self.read_packet(deadline)
        return self.make_response(packet, expected_id)

    def transfer_single(self, motor_id, instruction, parameter_count, expected_response_parameters,
                        encode_parameters=None):
        """Write an instruction and read the single reply to it.

        Checks that the reply comes from motor_id and carries no ERROR_FLAGS.
        Returns None without reading when motor_id is the broadcast id.
        """
        self.write_packet(motor_id, instruction, parameter_count, encode_parameters)
        if motor_id == BROADCAST_ID:
            return None
        return self.read_response(expected_response_parameters, expected_id=motor_id)

    def ping(self, motor_id):
        self._check_addressable(motor_id)
        return self.transfer_single(motor_id, Instructions.Ping, 0, PING_RESPONSE_PARAMETERS)

    def read(self, motor_id, reg):
        """Read a register.

        Args:
            motor_id: An integer representing the motor ID number
            reg: A Reg, e.g. bear_registers.CONFIG['p_gain_pos']

        Returns:
            A Response whose data is the decoded register value
        """
        self._check_addressable(motor_id)
        response = self.transfer_single(motor_id, *self._read_request(reg))
        return self._decode(reg, response)

    def write(self, motor_id, reg, value):
        """Write a register and wait for the status reply.

        Returns:
            The status Response, or None for the broadcast id
        """
        return self.transfer_single(motor_id, *self._write_request(reg, value))

    def multi_write(self, motor_id, entries):
        """Write several registers of one motor with a single instruction.

        Args:
            motor_id: An integer representing the motor ID number
            entries: MultiWrite instances, all config or all status registers
        """
        return self.transfer_single(motor_id, *self._multi_write_request(entries))

    def save_config(self, motor_id):
        """Save the config registers of a motor. They persist on reboot."""
        self.write_packet(motor_id, Instructions.SaveConfig, 0)

    def read_raw(self, motor_id, instruction, address, length):
        self._check_addressable(motor_id)
        return self.transfer_single(motor_id, instruction, 1, length, encode_address(address))

    def write_raw(self, motor_id, instruction, address, data):
        """Write raw bytes at address. The reply, if any, is left for read_response()."""
        self.write_packet(motor_id, instruction, len(data) + 1, encode_data(address, data))
