"""BEAR control table definitions"""

#pylint: disable=invalid-name

from .bear_reg import Reg, RegisterTable, RegisterType

U32 = '<u4'
F32 = '<f4'


CONFIG = RegisterTable(
    RegisterType.Config,
    # 0
    Reg('id', U32),
    Reg('mode', U32),
    Reg('baud_rate', U32),
    Reg('homing_offset', F32),
    # 4
    Reg('p_gain_id', F32),
    Reg('i_gain_id', F32),
    Reg('d_gain_id', F32),
    Reg('p_gain_iq', F32),
    Reg('i_gain_iq', F32),
    Reg('d_gain_iq', F32),
    # 10
    Reg('p_gain_vel', F32),
    Reg('i_gain_vel', F32),
    Reg('d_gain_vel', F32),
    Reg('p_gain_pos', F32),
    Reg('i_gain_pos', F32),
    Reg('d_gain_pos', F32),
    # 16
    Reg('p_gain_force', F32),
    Reg('i_gain_force', F32),
    Reg('d_gain_force', F32),
    # 19
    Reg('limit_acc_max', F32),
    Reg('limit_i_max', F32),
    Reg('limit_vel_max', F32),
    Reg('limit_pos_min', F32),
    Reg('limit_pos_max', F32),
    # 24
    Reg('min_voltage', F32),
    Reg('max_voltage', F32),
    Reg('watchdog_timeout', U32),
    Reg('temp_limit_low', F32),
    Reg('temp_limit_high', F32),
)


STATUS = RegisterTable(
    RegisterType.Status,
    # 0
    Reg('torque_enable', U32),
    Reg('homing_complete', F32),
    Reg('goal_id', F32),
    Reg('goal_iq', F32),
    Reg('goal_vel', F32),
    Reg('goal_pos', F32),
    # 6
    Reg('present_id', F32, w=False),
    Reg('present_iq', F32, w=False),
    Reg('present_vel', F32, w=False),
    Reg('present_pos', F32, w=False),
    Reg('input_voltage', F32, w=False),
    # 11
    Reg('winding_temp', F32, w=False),
    Reg('powerstage_temp', F32, w=False),
    Reg('ic_temp', F32, w=False),
    Reg('error_status', F32, w=False),
    Reg('warning_status', F32, w=False),
)

TABLES = (CONFIG, STATUS)

# Gain registers grouped by control loop, in (p, i, d) order.
PID_GAINS = {
    'id': ('p_gain_id', 'i_gain_id', 'd_gain_id'),
    'iq': ('p_gain_iq', 'i_gain_iq', 'd_gain_iq'),
    'vel': ('p_gain_vel', 'i_gain_vel', 'd_gain_vel'),
    'pos': ('p_gain_pos', 'i_gain_pos', 'd_gain_pos'),
    'force': ('p_gain_force', 'i_gain_force', 'd_gain_force'),
}


def lookup(name):
    """Find a register by name in either table."""
    for table in TABLES:
        if name in table:
            return table[name]
    raise KeyError("{} is not a valid register name".format(name))
