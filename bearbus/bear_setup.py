# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
setups = \
    {
    'bear_default':
        {
            'baudrate'          : 8000000,
            'read_buffer_size'  : 128,
            'write_buffer_size' : 128,
            'timeout_margin'    : 0.001,
            'poll_interval'     : 0.0002,
            'port_patterns'     : None,
        },
    'bear_low_speed':
        {
            'baudrate'          : 115200,
            'read_buffer_size'  : 128,
            'write_buffer_size' : 128,
            'timeout_margin'    : 0.005,
            'poll_interval'     : 0.001,
            'port_patterns'     : None,
        },
    }
