# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
"""
Register access by name.

First open a bus:

bus = make_connection()

Then use the bus with the different utility functions:

read_register(bus, 1, 'present_pos')
write_register(bus, 1, 'goal_pos', 1.2)
write_pid_gains(bus, 1, 'pos', 5.0, 0.0, 0.02)
save_config(bus, 1)

The helpers work with both the blocking and the asyncio bus. With an AsyncBus
they return coroutines to await.
"""

import logging

from .bear_async_bus import AsyncBus
from .bear_bus import Bus
from .bear_mock import AsyncMockSerialPort, MockSerialPort, MotorSimulator
from .bear_reg import MultiWrite
from .bear_registers import CONFIG, PID_GAINS, lookup
from .bear_serial import AsyncPySerialPort, PySerialPort, find_port
from .bear_setup import setups

logger = logging.getLogger(__name__)


def get_bus_class(use_async=False):
    if use_async:
        return AsyncBus
    return Bus


def make_connection(setup='bear_default', port_str=None, use_async=False, **overrides):
    """
    Opens a bus on a serial line.

    :param setup: Name of an entry of bear_setup.setups
    :param port_str: None - will search for /dev/ttyUSB* or /dev/ttyACM* and connect to the first
    :param use_async: Return an AsyncBus instead of a Bus
    :param overrides: Replace values of the setup (e.g. baudrate=1000000)
    :return: A Bus or AsyncBus
    """
    config = dict(setups[setup])
    unknown = set(overrides) - set(config)
    if unknown:
        raise KeyError('unknown setup keys: {}'.format(', '.join(sorted(unknown))))
    config.update(overrides)

    if port_str is None:
        port_str = find_port(config['port_patterns'])
    logger.info('connecting to %s with setup %s', port_str, setup)

    if use_async:
        port = AsyncPySerialPort.open(port_str, config['baudrate'], poll_interval=config['poll_interval'])
    else:
        port = PySerialPort.open(port_str, config['baudrate'])
    return get_bus_class(use_async)(port,
                                    read_buffer_size=config['read_buffer_size'],
                                    write_buffer_size=config['write_buffer_size'],
                                    baud_rate=config['baudrate'],
                                    timeout_margin=config['timeout_margin'])


def make_simulated_connection(motor_ids=(1,), use_async=False, setup='bear_default'):
    """
    Opens a bus on an in-memory port answered by simulated motors.

    :param motor_ids: ids of the simulated motors
    :return: A tuple (bus, {motor_id: MotorSimulator})
    """
    config = setups[setup]
    motors = {idn: MotorSimulator(idn) for idn in motor_ids}
    port_class = AsyncMockSerialPort if use_async else MockSerialPort
    port = port_class(baudrate=config['baudrate'], responder=_Responders(motors.values()))
    bus = get_bus_class(use_async)(port,
                                   read_buffer_size=config['read_buffer_size'],
                                   write_buffer_size=config['write_buffer_size'],
                                   timeout_margin=config['timeout_margin'])
    return bus, motors


class _Responders(object):
    """Concatenates the replies of several simulated motors on one line."""

    def __init__(self, motors):
        self.motors = list(motors)

    def respond(self, packet):
        return b''.join(motor.respond(packet) for motor in self.motors)


def close(bus):
    """
    Closes the bus and its port.
    """
    bus.close()


def read_register(bus, idn, reg_name):
    """
    Read a specific register from a specific motor

    :param bus: Bus returned by make_connection
    :param idn: Motor's id (integer)
    :param reg_name: Register name, config or status (e.g. 'present_pos')
    :return: A Response whose data is the register value
    """
    return bus.read(idn, lookup(reg_name))


def write_register(bus, idn, reg_name, value):
    """
    Write a value to a specific register of a specific motor

    :param bus: Bus returned by make_connection
    :param idn: Motor's id (integer)
    :param reg_name: Register name, config or status (e.g. 'goal_pos')
    :param value: int or float, depending on the register
    """
    return bus.write(idn, lookup(reg_name), value)


def read_vals(bus, idn, table=CONFIG):
    """
    Reads every register of a table, one instruction per register.

    Only for the blocking bus.

    :param bus: A Bus
    :param idn: Motor's id (integer)
    :param table: bear_registers.CONFIG or bear_registers.STATUS
    :return: A dictionary containing register names and corresponding values
    """
    return {reg.name: bus.read(idn, reg).data for reg in table}


def pid_gains(mode, p, i, d):
    """
    MultiWrite entries setting the gains of one control loop

    :param mode: One of 'id', 'iq', 'vel', 'pos', 'force'
    """
    names = PID_GAINS[mode]
    return [MultiWrite(CONFIG[name], value) for name, value in zip(names, (p, i, d))]


def write_pid_gains(bus, idn, mode, p, i, d):
    """
    Writes the p, i and d gains of one control loop with a single instruction

    :param bus: Bus returned by make_connection
    :param idn: Motor's id (integer)
    :param mode: One of 'id', 'iq', 'vel', 'pos', 'force'
    """
    return bus.multi_write(idn, pid_gains(mode, p, i, d))


def save_config(bus, idn):
    """
    Persists the config registers of a motor across power cycles
    """
    return bus.save_config(idn)
