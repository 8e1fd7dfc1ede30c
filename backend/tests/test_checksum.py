import copy
import hashlib

from flappy.services.gameplay.checksum import canonical_event, events_checksum


EVENTS = [
    {'timestamp': 0, 'type': 'PASS_PIPE', 'data': {'y': 120, 'pipe': 1}},
    {'timestamp': 3000, 'type': 'PASS_PIPE', 'data': {'y': 98, 'pipe': 2}},
    {'timestamp': 8000, 'type': 'GAME_END', 'data': None},
]


def test_canonical_form_and_digest():
    expected = '0-PASS_PIPE-{"y":120,"pipe":1}|3000-PASS_PIPE-{"y":98,"pipe":2}|8000-GAME_END-null'
    assert events_checksum(EVENTS) == hashlib.sha256(expected.encode('utf-8')).hexdigest()


def test_checksum_is_repeatable():
    assert events_checksum(EVENTS) == events_checksum(copy.deepcopy(EVENTS))


def test_every_field_mutation_changes_digest():
    original = events_checksum(EVENTS)
    mutations = [
        ('timestamp', 3001),
        ('type', 'FLAP'),
        ('data', {'y': 99, 'pipe': 2}),
    ]
    for key, value in mutations:
        mutated = copy.deepcopy(EVENTS)
        mutated[1][key] = value
        assert events_checksum(mutated) != original, key


def test_order_and_count_change_digest():
    original = events_checksum(EVENTS)
    assert events_checksum([EVENTS[1], EVENTS[0], EVENTS[2]]) != original
    assert events_checksum(EVENTS[:2]) != original
    assert events_checksum(EVENTS + [EVENTS[-1]]) != original


def test_payload_key_order_is_significant():
    a = [{'timestamp': 1, 'type': 'FLAP', 'data': {'a': 1, 'b': 2}}]
    b = [{'timestamp': 1, 'type': 'FLAP', 'data': {'b': 2, 'a': 1}}]
    assert events_checksum(a) != events_checksum(b)


def test_integral_float_timestamp_renders_as_integer():
    assert canonical_event({'timestamp': 3000.0, 'type': 'FLAP', 'data': {}}) == '3000-FLAP-{}'
    assert canonical_event({'timestamp': 1.5, 'type': 'FLAP', 'data': []}) == '1.5-FLAP-[]'


def test_missing_payload_renders_undefined():
    assert canonical_event({'timestamp': 5, 'type': 'FLAP'}) == '5-FLAP-undefined'
    assert canonical_event({'timestamp': 5, 'type': 'FLAP', 'data': None}) == '5-FLAP-null'


def test_non_ascii_payload_kept_verbatim():
    assert canonical_event({'timestamp': 1, 'type': 'CHAT', 'data': {'msg': 'হ্যালো'}}) == '1-CHAT-{"msg":"হ্যালো"}'


def test_empty_log_hashes_empty_string():
    assert events_checksum([]) == hashlib.sha256(b'').hexdigest()
