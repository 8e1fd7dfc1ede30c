import copy

import pytest

from flappy.services.gameplay.verifier import GameplayPolicy, Verdict, parse_timestamp_ms, verify_gameplay


def _ev(t, kind='PASS_PIPE', data=None):
    return {'timestamp': t, 'type': kind, 'data': data}


def test_scenario_a_plausible_game_is_valid():
    events = [_ev(0), _ev(3000), _ev(8000, 'GAME_END')]
    assert verify_gameplay(events, 2) == Verdict(True)


def test_scenario_b_short_game_rejected_regardless_of_score():
    events = [_ev(0, 'FLAP'), _ev(2000, 'FLAP')]
    for claimed in (0, 5, 100):
        verdict = verify_gameplay(events, claimed)
        assert not verdict.valid
        assert verdict.reason == 'duration too short'


def test_scenario_c_long_gap_is_suspicious():
    events = [_ev(0), _ev(15000)]
    verdict = verify_gameplay(events, 2)
    assert verdict == Verdict(False, 'suspicious time gap')


def test_no_events():
    assert verify_gameplay([], 0) == Verdict(False, 'no events')


def test_out_of_order_events():
    events = [_ev(0), _ev(4000), _ev(3000), _ev(6000, 'GAME_END')]
    assert verify_gameplay(events, 3).reason == 'invalid event sequence'


def test_equal_timestamps_are_allowed():
    events = [_ev(0), _ev(2000), _ev(2000), _ev(7000, 'GAME_END')]
    assert verify_gameplay(events, 3).valid


def test_gap_of_exactly_max_is_allowed():
    events = [_ev(0, 'FLAP'), _ev(10000, 'GAME_END')]
    assert verify_gameplay(events, 0).valid


def test_score_tolerance_of_one():
    events = [_ev(0), _ev(3000), _ev(8000, 'GAME_END')]
    assert verify_gameplay(events, 1).valid
    assert verify_gameplay(events, 3).valid
    assert verify_gameplay(events, 4) == Verdict(False, 'score mismatch')
    assert verify_gameplay(events, 0) == Verdict(False, 'score mismatch')


def test_only_scoring_events_count():
    events = [_ev(i * 1000, 'FLAP') for i in range(8)]
    assert verify_gameplay(events, 0).valid
    assert verify_gameplay(events, 2).reason == 'score mismatch'


def test_custom_policy():
    policy = GameplayPolicy(min_duration_sec=1, max_gap_sec=2, score_tolerance=0,
                            scoring_event_types=frozenset({'COIN'}))
    events = [_ev(0, 'COIN'), _ev(1500, 'COIN'), _ev(3000, 'PASS_PIPE')]
    assert verify_gameplay(events, 2, policy).valid
    assert verify_gameplay(events, 3, policy).reason == 'score mismatch'
    assert verify_gameplay([_ev(0, 'COIN'), _ev(2500, 'COIN')], 2, policy).reason == 'suspicious time gap'


def test_policy_from_config():
    policy = GameplayPolicy.from_config({
        'MIN_GAME_DURATION_SEC': '3',
        'MAX_EVENT_GAP_SEC': 4,
        'SCORE_TOLERANCE': '2',
        'SCORING_EVENT_TYPES': 'PASS_PIPE, COIN',
    })
    assert policy == GameplayPolicy(3.0, 4.0, 2, frozenset({'PASS_PIPE', 'COIN'}))
    assert GameplayPolicy.from_config({}) == GameplayPolicy()


def test_iso_timestamps():
    events = [
        _ev('2025-01-01T00:00:00Z'),
        _ev('2025-01-01T00:00:04.500Z'),
        _ev('2025-01-01T00:00:09Z', 'GAME_END'),
    ]
    assert verify_gameplay(events, 2).valid
    assert parse_timestamp_ms('2025-01-01T00:00:01Z') - parse_timestamp_ms('2025-01-01T00:00:00+00:00') == 1000


def test_unparseable_timestamp_is_invalid_sequence():
    events = [_ev(0), _ev('yesterday'), _ev(8000)]
    assert verify_gameplay(events, 2).reason == 'invalid event sequence'
    assert verify_gameplay([_ev(None), _ev(6000)], 1).reason == 'invalid event sequence'


def test_verdict_is_deterministic():
    events = [_ev(0), _ev(3000), _ev(8000, 'GAME_END')]
    snapshot = copy.deepcopy(events)
    first = verify_gameplay(events, 2)
    assert all(verify_gameplay(events, 2) == first for _ in range(5))
    assert events == snapshot


def test_verdict_to_dict():
    assert Verdict(True).to_dict() == {'valid': True}
    assert Verdict(False, 'no events').to_dict() == {'valid': False, 'reason': 'no events'}


def test_non_finite_timestamps_are_invalid_sequence():
    for bad in ('NaN', 'Infinity', '-Infinity', 'nan', float('nan'), float('inf'), float('-inf')):
        events = [_ev(0), _ev(bad), _ev(3000), _ev(8000, 'GAME_END')]
        assert verify_gameplay(events, 3) == Verdict(False, 'invalid event sequence'), bad
        # A log made only of NaN must not slip past the duration and gap checks
        assert not verify_gameplay([_ev(bad), _ev(bad), _ev(bad)], 3).valid, bad


def test_parse_timestamp_rejects_non_finite():
    for bad in ('NaN', ' Infinity ', float('nan'), float('-inf')):
        with pytest.raises(ValueError):
            parse_timestamp_ms(bad)


def test_huge_integer_timestamp_is_invalid_sequence():
    events = [_ev(0), _ev(3000), _ev(10 ** 400, 'GAME_END')]
    assert verify_gameplay(events, 2) == Verdict(False, 'invalid event sequence')
