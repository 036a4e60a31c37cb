import unittest
import numpy as np

from bearbus import bear_utils
from bearbus.bear_async_bus import AsyncBus
from bearbus.bear_bus import Bus
from bearbus.bear_exceptions import MotorError, ReadTimeout
from bearbus.bear_mock import MockSerialPort, MotorSimulator
from bearbus.bear_registers import CONFIG, STATUS
from bearbus.bear_serial import find_port
from bearbus.utils import BROADCAST_ID, ErrorFlags, Instructions


class TestSimulatedConnection(unittest.TestCase):

    def setUp(self):
        self.bus, self.motors = bear_utils.make_simulated_connection(motor_ids=(1, 2))

    def test_bus_class(self):
        self.assertIs(bear_utils.get_bus_class(), Bus)
        self.assertIs(bear_utils.get_bus_class(use_async=True), AsyncBus)
        self.assertIsInstance(self.bus, Bus)
        self.assertEqual(sorted(self.motors), [1, 2])

    def test_write_then_read(self):
        bear_utils.write_register(self.bus, 2, 'goal_pos', 1.25)
        self.assertEqual(self.motors[2].status['goal_pos'], 1.25)
        self.assertEqual(self.motors[1].status['goal_pos'], 0)
        self.assertEqual(bear_utils.read_register(self.bus, 2, 'goal_pos').data, 1.25)

    def test_read_id(self):
        for idn in (1, 2):
            self.assertEqual(bear_utils.read_register(self.bus, idn, 'id').data, idn)

    def test_ping(self):
        self.assertEqual(self.bus.ping(1).data, b'\x00\x01\x02\x03')

    def test_write_pid_gains(self):
        bear_utils.write_pid_gains(self.bus, 1, 'pos', 5.0, 0.0, 0.25)
        config = self.motors[1].config
        self.assertEqual((config['p_gain_pos'], config['i_gain_pos'], config['d_gain_pos']), (5.0, 0.0, 0.25))
        self.assertEqual(self.motors[1].instructions, [Instructions.WriteConfig])

    def test_pid_gains_unknown_mode(self):
        with self.assertRaises(KeyError):
            bear_utils.pid_gains('torque', 1.0, 0.0, 0.0)

    def test_save_config(self):
        bear_utils.write_register(self.bus, 1, 'limit_pos_max', 3.0)
        self.assertEqual(self.motors[1].saved_config['limit_pos_max'], 0)
        bear_utils.save_config(self.bus, 1)
        self.assertEqual(self.motors[1].saved_config['limit_pos_max'], 3.0)

    def test_broadcast_write(self):
        self.assertIsNone(self.bus.write(BROADCAST_ID, STATUS['torque_enable'], 1))
        self.assertEqual(self.motors[1].status['torque_enable'], 1)
        self.assertEqual(self.motors[2].status['torque_enable'], 1)

    def test_read_vals(self):
        self.motors[1].config['limit_vel_max'] = np.float32(12.5).item()
        values = bear_utils.read_vals(self.bus, 1)
        self.assertEqual(set(values), set(CONFIG.names()))
        self.assertEqual(values['limit_vel_max'], 12.5)
        self.assertEqual(values['id'], 1)

    def test_warning(self):
        self.motors[1].error = ErrorFlags.OVERHEAT
        response = bear_utils.read_register(self.bus, 1, 'winding_temp')
        self.assertEqual(response.warning, ErrorFlags.OVERHEAT)

    def test_error(self):
        self.motors[2].error = ErrorFlags.ABSOLUTE_POSITION
        with self.assertRaises(MotorError):
            bear_utils.write_register(self.bus, 2, 'goal_pos', 0.0)

    def test_absent_motor(self):
        with self.assertRaises(ReadTimeout):
            self.bus.ping(3)

    def test_unknown_register(self):
        with self.assertRaises(KeyError):
            bear_utils.read_register(self.bus, 1, 'goal_torque')

    def test_close(self):
        bear_utils.close(self.bus)
        self.assertTrue(self.bus.port.closed)


class TestAsyncSimulatedConnection(unittest.IsolatedAsyncioTestCase):

    async def test_round_trip(self):
        bus, motors = bear_utils.make_simulated_connection(use_async=True)
        self.assertIsInstance(bus, AsyncBus)
        await bear_utils.write_register(bus, 1, 'goal_vel', -2.0)
        self.assertEqual((await bear_utils.read_register(bus, 1, 'goal_vel')).data, -2.0)
        await bear_utils.write_pid_gains(bus, 1, 'vel', 1.0, 0.5, 0.0)
        self.assertEqual(motors[1].config['i_gain_vel'], 0.5)


class TestMotorSimulator(unittest.TestCase):

    def test_ignores_other_ids(self):
        port = MockSerialPort(responder=MotorSimulator(5))
        bus = Bus(port)
        self.assertEqual(bus.read(5, CONFIG['id']).data, 5)
        with self.assertRaises(ReadTimeout):
            bus.read(6, CONFIG['id'])


class TestMakeConnection(unittest.TestCase):

    def test_unknown_override(self):
        with self.assertRaises(KeyError):
            bear_utils.make_connection(port_str='/dev/null', baud=9600)

    def test_unknown_setup(self):
        with self.assertRaises(KeyError):
            bear_utils.make_connection(setup='no_such_setup')

    def test_find_port_no_device(self):
        with self.assertRaises(IOError):
            find_port(['/dev/bearbus-test-no-such-device*'])


if __name__ == '__main__':
    unittest.main(buffer=True)
