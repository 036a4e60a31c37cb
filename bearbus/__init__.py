# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
from bearbus.bear_async_bus import AsyncBus
from bearbus.bear_bus import Bus
from bearbus.bear_reg import MultiWrite, Response
from bearbus.bear_registers import CONFIG, STATUS
from bearbus.utils import BROADCAST_ID, ERROR_FLAGS, WARNING_FLAGS, ErrorFlags, Instructions, calculate_checksum
