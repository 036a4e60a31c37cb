import asyncio
import unittest
import numpy as np

from bearbus.bear_async_bus import AsyncBus
from bearbus.bear_exceptions import (DiscardBufferError, InvalidPacketId, MotorError, ReadError, ReadTimeout,
                                     WriteError)
from bearbus.bear_mock import AsyncMockSerialPort, status_packet
from bearbus.bear_packet import as_instruction_packet
from bearbus.bear_reg import MultiWrite, Response
from bearbus.bear_registers import CONFIG, STATUS
from bearbus.utils import BROADCAST_ID, ErrorFlags, Instructions


def f32(value):
    return np.float32(value).tobytes()


class TestAsyncBus(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.port = AsyncMockSerialPort(baudrate=1000000)
        self.bus = AsyncBus(self.port)

    async def test_write(self):
        self.port.queue_reply(status_packet(1))
        response = await self.bus.write(1, CONFIG['p_gain_pos'], 5.0)
        self.assertEqual(self.port.written,
                         [bytes([0xFF, 0xFF, 0x01, 0x07, 0x05, 0x0D, 0x00, 0x00, 0xA0, 0x40, 0x05])])
        self.assertEqual(response, Response(1, None, b''))

    async def test_read(self):
        self.port.queue_reply(b'\x00\x01' + status_packet(1, ErrorFlags.OVERHEAT, f32(-0.75)))
        response = await self.bus.read(1, STATUS['present_pos'])
        self.assertEqual(self.port.written, [bytes(as_instruction_packet(1, Instructions.ReadStatus, 9))])
        self.assertEqual(response, Response(1, ErrorFlags.OVERHEAT, -0.75))
        self.assertEqual(self.bus.skipped_bytes, 2)

    async def test_byte_by_byte(self):
        self.port.chunk_size = 1
        self.port.queue_reply(status_packet(1, 0, (7).to_bytes(4, 'little')))
        response = await self.bus.read(1, CONFIG['watchdog_timeout'])
        self.assertEqual(response.data, 7)

    async def test_ping(self):
        self.port.queue_reply(status_packet(1, 0, b'\x00\x01\x02\x03'))
        response = await self.bus.ping(1)
        self.assertEqual(response.data, b'\x00\x01\x02\x03')

    async def test_wrong_motor(self):
        self.port.queue_reply(status_packet(3))
        with self.assertRaises(InvalidPacketId):
            await self.bus.write(1, STATUS['goal_pos'], 0.0)

    async def test_motor_error(self):
        self.port.queue_reply(status_packet(1, ErrorFlags.WATCHDOG_ESTOP))
        with self.assertRaises(MotorError):
            await self.bus.write(1, STATUS['goal_pos'], 0.0)

    async def test_timeout(self):
        with self.assertRaises(ReadTimeout) as cm:
            await self.bus.read(1, STATUS['present_pos'])
        self.assertIsInstance(cm.exception.error, TimeoutError)

    async def test_port_failures(self):
        self.port.read_error = OSError('read failed')
        with self.assertRaises(ReadError):
            await self.bus.ping(1)

        self.port.write_error = OSError('write failed')
        with self.assertRaises(WriteError):
            await self.bus.ping(1)

        self.port.discard_error = OSError('discard failed')
        with self.assertRaises(DiscardBufferError):
            await self.bus.ping(1)

    async def test_multi_write(self):
        self.port.queue_reply(status_packet(1))
        await self.bus.multi_write(1, [MultiWrite(STATUS['goal_iq'], 0.5), MultiWrite(STATUS['goal_vel'], 1.0)])
        packet = self.port.written[0]
        self.assertEqual(packet[3], 12)
        self.assertEqual(packet[4], Instructions.WriteStatus)
        self.assertEqual(packet[5], STATUS['goal_iq'].offset)
        self.assertEqual(packet[10], STATUS['goal_vel'].offset)

    async def test_fire_and_forget(self):
        self.assertIsNone(await self.bus.save_config(1))
        self.assertIsNone(await self.bus.write(BROADCAST_ID, STATUS['torque_enable'], 0))
        self.assertEqual(self.port.written[0], bytes([0xFF, 0xFF, 0x01, 0x02, 0x06, 0xF6]))
        with self.assertRaises(ValueError):
            await self.bus.read(BROADCAST_ID, STATUS['present_pos'])

    async def test_raw_access(self):
        self.port.queue_reply(status_packet(1, 0, b'\x0a\x0b'))
        response = await self.bus.read_raw(1, Instructions.ReadConfig, 3, 2)
        self.assertEqual(response.data, b'\x0a\x0b')

        self.port.queue_reply(status_packet(1))
        await self.bus.write_raw(1, Instructions.WriteConfig, 1, b'\x01\x00\x00\x00')
        self.assertEqual(await self.bus.read_response(0, expected_id=1), Response(1, None, b''))

    async def test_runs_beside_other_tasks(self):
        ticks = []

        async def ticker():
            for _ in range(3):
                ticks.append(1)
                await asyncio.sleep(0)

        self.port.queue_reply(status_packet(1, 0, f32(1.0)))
        response, _ = await asyncio.gather(self.bus.read(1, STATUS['present_pos']), ticker())
        self.assertEqual(response.data, 1.0)
        self.assertEqual(len(ticks), 3)

    async def test_context_manager(self):
        async with AsyncBus(self.port):
            self.assertFalse(self.port.closed)
        self.assertTrue(self.port.closed)


if __name__ == '__main__':
    unittest.main(buffer=True)
