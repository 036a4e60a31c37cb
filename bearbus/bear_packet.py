# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
"""
Packet framing for the BEAR protocol.

PACKET
| HEADER    | ID | LEN | INST | ADDR | PARAM        | CHKSUM |
| 255, 255  | 2  | 7   | 3    | 5    | 0, 0, 48, 65 | 125    |

LEN counts the instruction byte, the parameters and the checksum byte.
Status replies use the same layout with the motor's error byte in place of
the instruction.

Nothing in here does I/O. The blocking and the asyncio bus both drive a
PacketReader with the bytes their serial port returns.
"""

import logging

from .bear_exceptions import BufferTooSmallError, InvalidChecksum
from .utils import HEADER_PREFIX, calculate_checksum

logger = logging.getLogger(__name__)

HEADER_SIZE = 4
PACKET_ID = 2
PACKET_LEN = 3
PACKET_INSTRUCTION = 4
PACKET_ERROR = 4
PACKET_PARAMS = 5

# A packet with no parameters: header, instruction or error byte, checksum.
MIN_PACKET_SIZE = HEADER_SIZE + 2
# Bits per byte on the line: start bit, 8 data bits, stop bit.
BITS_PER_BYTE = 10


def packet_size(parameter_count):
    """Total number of bytes of a packet carrying parameter_count parameters."""
    return MIN_PACKET_SIZE + parameter_count


def make_packet(buffer, motor_id, instruction, parameter_count, encode_parameters=None):
    """Encodes an instruction packet at the start of buffer.

    Args:
        buffer: A writable buffer (bytearray or memoryview)
        motor_id: An integer representing the motor ID number
        instruction: Instruction code (e.g., Instructions.Ping)
        parameter_count: Number of parameter bytes
        encode_parameters: A callable filling a memoryview of exactly
            parameter_count bytes. May raise BufferTooSmallError.

    Returns:
        The number of bytes of the encoded packet

    Raises:
        BufferTooSmallError: if buffer cannot hold the whole packet
    """
    length = parameter_count + 2
    BufferTooSmallError.check(HEADER_SIZE + length, len(buffer))
    if length > 0xFF:
        raise ValueError('too many parameters for one packet: {}'.format(parameter_count))

    view = memoryview(buffer)
    view[0] = HEADER_PREFIX[0]
    view[1] = HEADER_PREFIX[1]
    view[PACKET_ID] = motor_id
    view[PACKET_LEN] = length
    view[PACKET_INSTRUCTION] = int(instruction)
    checksum_index = PACKET_PARAMS + parameter_count
    if encode_parameters is not None:
        encode_parameters(view[PACKET_PARAMS:checksum_index])
    view[checksum_index] = calculate_checksum(view[PACKET_ID:checksum_index])
    return checksum_index + 1


def as_instruction_packet(motor_id, instruction, *params):
    """Constructs an instruction packet as a new bytearray."""
    packet = bytearray(packet_size(len(params)))

    def fill(view):
        view[:] = bytes(params)

    make_packet(packet, motor_id, instruction, len(params), fill)
    return packet


def find_header(buffer):
    """Find the potential starting position of a header.

    Returns the first position where the header prefix starts. If the buffer
    ends with a partial prefix, the position of that partial prefix is
    returned so a header split over two reads is not lost. Returns
    len(buffer) when there is no candidate at all.
    """
    prefix = bytes(HEADER_PREFIX)
    size = len(buffer)
    for i in range(size):
        possible = min(len(prefix), size - i)
        if bytes(buffer[i:i + possible]) == prefix[:possible]:
            return i
    return size


def message_transfer_time(message_size, baud_rate):
    """Time in seconds needed to transfer message_size bytes at baud_rate.

    The size must include the headers and the checksum of the message. The
    result is rounded up to the next nanosecond.
    """
    bits = message_size * BITS_PER_BYTE
    nanos = -(-bits * 1000000000 // baud_rate)
    return nanos / 1e9


class PacketReader(object):
    """Stream parser turning serial input into validated packets.

    The reader owns a fixed size read buffer and two cursors:

        read_len: number of valid bytes in the buffer
        used_bytes: leading bytes that belong to an already returned packet

    used_bytes <= read_len <= capacity at all times. Used bytes are only
    shifted out by the next remove_garbage() call, so the packet returned by
    take_packet() stays valid until then.

    A driver reads like this:

        while True:
            message_len = reader.poll()
            if message_len is not None:
                break
            reader.commit(port.read(reader.unfilled(), deadline))
        packet = reader.take_packet(message_len)
    """

    def __init__(self, buffer_size=128):
        BufferTooSmallError.check(MIN_PACKET_SIZE, buffer_size)
        self.buffer = bytearray(buffer_size)
        self.read_len = 0
        self.used_bytes = 0
        self.skipped_bytes = 0

    @property
    def capacity(self):
        return len(self.buffer)

    def reset(self):
        """Forget everything buffered, used or not."""
        self.read_len = 0
        self.used_bytes = 0

    def feed(self, data):
        """Copy data into the unfilled tail, as a read would. Returns the count copied."""
        n = min(len(data), self.capacity - self.read_len)
        self.buffer[self.read_len:self.read_len + n] = data[:n]
        self.read_len += n
        return n

    def unfilled(self):
        """Writable view of the free tail of the buffer."""
        return memoryview(self.buffer)[self.read_len:]

    def commit(self, n):
        """Account for n bytes a read placed into unfilled()."""
        if n < 0 or self.read_len + n > self.capacity:
            raise ValueError('invalid read count {}'.format(n))
        self.read_len += n

    def consume_read_bytes(self, n):
        """Drop the first n buffered bytes and shift the rest to the front."""
        assert n <= self.read_len, (n, self.read_len)
        if n == 0:
            return
        self.buffer[:self.read_len - n] = self.buffer[n:self.read_len]
        # Some consumed bytes may be garbage instead of used bytes.
        self.used_bytes = max(self.used_bytes - n, 0)
        self.read_len -= n

    def remove_garbage(self):
        """Remove used bytes and leading garbage from the buffer.

        Returns:
            The number of garbage bytes skipped
        """
        garbage_len = find_header(memoryview(self.buffer)[self.used_bytes:self.read_len])
        if garbage_len > 0:
            logger.debug('skipping %d bytes of leading garbage.', garbage_len)
            logger.debug('skipped garbage: %s',
                         self.buffer[self.used_bytes:self.used_bytes + garbage_len].hex(' '))
            self.skipped_bytes += garbage_len
        self.consume_read_bytes(self.used_bytes + garbage_len)
        assert self.used_bytes == 0
        return garbage_len

    def poll(self):
        """Resynchronize and check whether a whole message is buffered.

        Returns:
            The size of the complete message at the front of the buffer, or
            None if more bytes must be read first

        Raises:
            BufferTooSmallError: if the announced message does not fit in the buffer
        """
        while True:
            self.remove_garbage()
            # After remove_garbage() the buffer starts with a header prefix, if anything.
            if self.read_len < HEADER_SIZE:
                return None
            length = self.buffer[PACKET_LEN]
            if length < 2:
                # Too short for an error byte and a checksum: not a real header.
                logger.debug('ignoring header with invalid length %d, skipping 1 byte', length)
                self.skipped_bytes += 1
                self.consume_read_bytes(1)
                continue
            message_len = HEADER_SIZE + length
            BufferTooSmallError.check(message_len, self.capacity)
            if self.read_len >= message_len:
                return message_len
            return None

    def take_packet(self, message_len):
        """Validate and hand out the complete message at the front of the buffer.

        The message is marked as used in both outcomes, so the next
        remove_garbage() skips it.

        Returns:
            A memoryview of the packet without its checksum byte

        Raises:
            InvalidChecksum: if the checksum byte does not match
        """
        parameters_end = message_len - 1
        view = memoryview(self.buffer)
        logger.debug('read packet: %s', self.buffer[:message_len].hex(' '))

        checksum_message = self.buffer[parameters_end]
        checksum_computed = calculate_checksum(view[PACKET_ID:parameters_end])
        self.used_bytes += message_len
        if checksum_message != checksum_computed:
            raise InvalidChecksum(checksum_message, checksum_computed)
        return view[:parameters_end]
