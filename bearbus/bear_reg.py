"""Register descriptors."""

#pylint: disable=invalid-name
#pylint: disable=missing-docstring

from enum import Enum

import numpy as np

from .bear_exceptions import BufferTooSmallError, InvalidParameterCount, ReadOnlyRegister
from .utils import Instructions


class RegisterType(Enum):
    Config = 'config'
    Status = 'status'


READ_INSTRUCTIONS = {
    RegisterType.Config: Instructions.ReadConfig,
    RegisterType.Status: Instructions.ReadStatus,
}

WRITE_INSTRUCTIONS = {
    RegisterType.Config: Instructions.WriteConfig,
    RegisterType.Status: Instructions.WriteStatus,
}


class Reg(object):
    """A class representing a BEAR register.

    Config registers persist across power cycles once saved, status registers
    are volatile. Each class has its own address space.

    Attributes:
        name: A string (semantics of the register)
        reg_type: A RegisterType, the address space the register lives in
        offset: An integer representing the address of the register in its table
        dtype_string: A little-endian numpy dtype string, '<u4' or '<f4'
        w: A boolean, True iff writeable register
        width: An integer representing number of bytes on the wire
    """

    def __init__(self, name, dtype_string, w=True, reg_type=None, offset=None):
        """Inits Reg objects.

        Args:
            name: A string The label of the register (e.g. "p_gain_pos")
            dtype_string: A string, numpy dtype of the value ('<u4', '<f4', '<u2', '<u1')
            w: A boolean, True iff writeable register
            reg_type: None or RegisterType, normally assigned by RegisterTable
            offset: None or integer address, normally assigned by RegisterTable
        """
        self.name = name
        self.dtype_string = dtype_string
        dtype = np.dtype(dtype_string)
        if dtype.kind not in 'uif':
            raise ValueError('{}: unsupported register type {}'.format(name, dtype_string))
        if dtype.itemsize not in (1, 2, 4):
            raise ValueError('{}: register width must be 1, 2 or 4 bytes, got {}'.format(name, dtype.itemsize))
        if dtype.itemsize > 1 and dtype.byteorder == '>':
            raise ValueError('{}: registers are little-endian'.format(name))
        self.w = w
        self.reg_type = reg_type
        self.offset = offset

    def __repr__(self):
        return 'Reg({!r}, {!r}, w={}, reg_type={}, offset={})'.format(
            self.name, self.dtype_string, self.w, self.reg_type, self.offset)

    @property
    def dtype(self):
        return np.dtype(self.dtype_string).newbyteorder('<')

    @property
    def width(self):
        return self.dtype.itemsize

    @property
    def read_inst(self):
        return READ_INSTRUCTIONS[self.reg_type]

    @property
    def write_inst(self):
        if not self.w:
            return None
        return WRITE_INSTRUCTIONS[self.reg_type]

    def check_writable(self):
        if not self.w:
            raise ReadOnlyRegister('{} register {!r} is read-only'.format(self.reg_type.value, self.name))

    def encode_bytes(self, value):
        """Encode a value into its little-endian wire representation.

        Raises:
            ValueError: if an integer register gets a fractional value or
                a value that does not fit
        """
        dtype = self.dtype
        if dtype.kind in 'ui':
            if not float(value).is_integer():
                raise ValueError('{}: {} is not an integer'.format(self.name, value))
            value = int(value)
            info = np.iinfo(dtype)
            if not info.min <= value <= info.max:
                raise ValueError('{}: {} is out of range [{}, {}]'.format(self.name, value, info.min, info.max))
        return np.array(value, dtype=dtype).tobytes()

    def encode(self, value, buffer):
        """Encode a value into the front of buffer.

        Raises:
            BufferTooSmallError: if buffer is shorter than the register width
        """
        BufferTooSmallError.check(self.width, len(buffer))
        buffer[:self.width] = self.encode_bytes(value)

    def decode(self, data):
        """Decode the parameter bytes of a response.

        Raises:
            InvalidParameterCount: if data is not exactly one register wide
        """
        InvalidParameterCount.check(len(data), self.width)
        return np.frombuffer(bytes(data), dtype=self.dtype)[0].item()


class RegisterTable(object):
    """The registers of one address space, in address order.

    If no register has an offset, addresses are assigned sequentially from 0
    (every register occupies a single address regardless of its width).

    Usage:
        table['p_gain_pos'] -> Reg
        table[13] -> Reg at index 13
        'p_gain_pos' in table -> True
    """

    def __init__(self, reg_type, *regs):
        self.reg_type = reg_type
        self._regs = regs

        no_offsets = all(reg.offset is None for reg in regs)
        all_offsets = all(reg.offset is not None for reg in regs)
        if not regs:
            raise NotImplementedError('Empty register seq')
        elif no_offsets:
            for offset, reg in enumerate(regs):
                reg.offset = offset
        elif not all_offsets:
            raise NotImplementedError('Some-but-not-all offsets assigned')

        names = set()
        offsets = set()
        for reg in regs:
            if reg.reg_type not in (None, reg_type):
                raise ValueError('{} belongs to {}, not {}'.format(reg.name, reg.reg_type, reg_type))
            reg.reg_type = reg_type
            if not 0 <= reg.offset <= 0xFF:
                raise ValueError('{}: address {} does not fit in one byte'.format(reg.name, reg.offset))
            if reg.name in names:
                raise ValueError('duplicate register name {}'.format(reg.name))
            if reg.offset in offsets:
                raise ValueError('duplicate register address {}'.format(reg.offset))
            names.add(reg.name)
            offsets.add(reg.offset)
        self._by_name = {reg.name: reg for reg in regs}

    def __str__(self):
        return 'RegisterTable{%s, %d registers}' % (self.reg_type.value, len(self))

    def __iter__(self):
        return iter(self._regs)

    def __len__(self):
        return len(self._regs)

    def __contains__(self, key):
        if isinstance(key, str):
            return key in self._by_name
        if isinstance(key, Reg):
            return self._by_name.get(key.name) is key
        return False

    def __getitem__(self, key):
        if isinstance(key, str):
            return self._by_name[key]
        elif isinstance(key, int):
            return self._regs[key]
        raise TypeError(key)

    def names(self):
        return [reg.name for reg in self._regs]

    def by_address(self, address):
        for reg in self._regs:
            if reg.offset == address:
                return reg
        raise KeyError(address)


class Response(object):
    """Class representing status packets coming back from a motor.

    Attributes:
        motor_id: The id of the motor that sent the response
        warning: None, or the ErrorFlags warning bits the motor reported
        data: The decoded value, or the raw parameter bytes
    """

    def __init__(self, motor_id, warning, data):
        self.motor_id = motor_id
        self.warning = warning
        self.data = data

    def __eq__(self, other):
        if not isinstance(other, Response):
            return NotImplemented
        return (self.motor_id, self.warning, self.data) == (other.motor_id, other.warning, other.data)

    def __repr__(self):
        return 'Response(motor_id={}, warning={!r}, data={!r})'.format(self.motor_id, self.warning, self.data)

    def __str__(self):
        if self.warning:
            return 'Response{%d, %s, data=%s}' % (self.motor_id, self.warning, self.data)
        return 'Response{%d, "ok", data=%s}' % (self.motor_id, self.data)


class MultiWrite(object):
    """One entry of a multi-write: a register address and its 4 value bytes."""

    WIDTH = 5

    def __init__(self, reg, value):
        reg.check_writable()
        if reg.width != 4:
            raise ValueError('{}: multi-write entries carry 4 byte values, register is {} bytes'.format(
                reg.name, reg.width))
        self.reg = reg
        self.address = reg.offset
        self.data = reg.encode_bytes(value)

    def __repr__(self):
        return 'MultiWrite({}, {})'.format(self.reg.name, self.data.hex())
