import dataclasses
from datetime import date

import pytest

from contact_trace_core import (
    ContactTrace,
    Direction,
    InvalidWindowError,
    TraceConfig,
    TraceWindow,
    ValidationError,
    trace,
    trace_date_interval,
)

from conftest import day


def test_end_date_and_days_share_windows(chain_log):
    ct = trace(chain_log, 'B', t_end='2024-01-05', days=4)
    assert ct.root == 'B'
    assert ct.in_window == ct.out_window == TraceWindow(day(1), day(5))
    assert ct.ingoing.direction is Direction.IN
    assert ct.outgoing.direction is Direction.OUT
    assert ct.ingoing.contacts() == {'A'}
    assert ct.outgoing.contacts() == {'C', 'D'}


def test_zero_days_is_a_single_day_window(chain_log):
    ct = trace(chain_log, 'A', t_end=day(1), days=0)
    assert ct.out_window == TraceWindow(day(1), day(1))
    assert ct.outgoing.outgoing_contact_chain() == 1


def test_independent_windows(chain_log):
    ct = trace(chain_log, 'C',
               in_begin=day(2), in_end=day(2),
               out_begin=day(3), out_end=day(4))
    assert ct.in_window == TraceWindow(day(2), day(2))
    assert ct.out_window == TraceWindow(day(3), day(4))
    assert ct.ingoing.contacts() == {'B'}
    assert ct.outgoing.is_empty


def test_date_interval(chain_log):
    ct = trace(chain_log, 'A', in_begin='2024-01-01', in_end='2024-01-03',
               out_begin='2024-01-02', out_end='2024-01-05')
    assert ct.date_interval() == {
        'root': 'A',
        'inBegin': day(1), 'inEnd': day(3), 'inDays': 2,
        'outBegin': day(2), 'outEnd': day(5), 'outDays': 3,
    }


def test_trace_date_interval_table(chain_log):
    traces = [trace(chain_log, root, t_end=day(5), days=4) for root in ('A', 'B')]
    table = trace_date_interval(traces)
    assert table.columns == ['root', 'inBegin', 'inEnd', 'inDays', 'outBegin', 'outEnd', 'outDays']
    assert table['root'].to_list() == ['A', 'B']
    assert table['inDays'].to_list() == [4, 4]
    assert trace_date_interval(traces[0]).height == 1


def test_trace_date_interval_rejects_other_objects():
    with pytest.raises(ValidationError):
        trace_date_interval([{'root': 'A'}])


def test_to_frame(chain_log):
    frame = trace(chain_log, 'B', t_end=day(5), days=4).to_frame()
    assert frame.columns[:8] == ['root', 'direction', 'inBegin', 'inEnd', 'inDays', 'outBegin', 'outEnd', 'outDays']
    assert frame['direction'].to_list() == ['in', 'out', 'out']
    assert frame['distance'].to_list() == [1, 1, 2]
    assert frame['outBegin'].to_list() == [day(1)] * 3


def test_to_frame_without_contacts(chain_log):
    frame = trace(chain_log, 'Z', t_end=day(5), days=4).to_frame()
    assert frame.height == 0
    assert 'inBegin' in frame.columns


def test_trace_is_read_only(chain_log):
    ct = trace(chain_log, 'A', t_end=day(5), days=4)
    with pytest.raises(dataclasses.FrozenInstanceError):
        ct.root = 'B'


def test_negative_days(chain_log):
    with pytest.raises(InvalidWindowError):
        trace(chain_log, 'A', t_end=day(5), days=-1)


def test_non_integer_days(chain_log):
    with pytest.raises(ValidationError):
        trace(chain_log, 'A', t_end=day(5), days=1.5)
    with pytest.raises(ValidationError):
        trace(chain_log, 'A', t_end=day(5), days='90')


def test_inverted_window(chain_log):
    with pytest.raises(InvalidWindowError):
        trace(chain_log, 'A', in_begin=day(5), in_end=day(1), out_begin=day(1), out_end=day(5))


def test_missing_parameters(chain_log):
    with pytest.raises(ValidationError):
        trace(chain_log, 'A')
    with pytest.raises(ValidationError):
        trace(chain_log, 'A', t_end=day(5))
    with pytest.raises(ValidationError):
        trace(chain_log, 'A', in_begin=day(1), in_end=day(5), out_begin=day(1))


def test_mixed_window_styles(chain_log):
    with pytest.raises(ValidationError, match="not both"):
        trace(chain_log, 'A', t_end=day(5), days=4, in_begin=day(1))


def test_unparseable_window_date(chain_log):
    with pytest.raises(ValidationError):
        trace(chain_log, 'A', t_end='31 Oct 2005', days=4)


def test_max_distance_from_config(chain_log):
    ct = trace(chain_log, 'A', t_end=day(5), days=4, config=TraceConfig(max_distance=1))
    assert ct.outgoing.contacts() == {'B'}


def test_directions_are_checked(chain_log):
    ct = trace(chain_log, 'A', t_end=day(5), days=4)
    with pytest.raises(ValidationError):
        ContactTrace(root='A', ingoing=ct.outgoing, outgoing=ct.ingoing)


def test_window_from_end_date():
    window = TraceWindow.from_end_date('2005-10-31', 90)
    assert window.begin == date(2005, 8, 2)
    assert window.days == 90
