"""Unit tests for EventStore and the local blob stores."""
import json
from unittest.mock import Mock

import pytest

from engine.errors import PersistenceError, PreconditionViolation
from engine.grid_builder import CalendarGridBuilder
from engine.models import HolidayEvent, UserEvent
from storage.blob_store import BlobQuotaExceededError, FileBlobStore, MemoryBlobStore
from storage.event_store import EventStore


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def event_store(blob_store):
    return EventStore(blob_store)


@pytest.fixture
def sample_event():
    """Create a sample UserEvent for testing."""
    return UserEvent(
        id='1736935200000',
        title='Team meeting',
        type='meeting',
        time='09:00',
        duration=30,
        description='Weekly sync',
        priority='high'
    )


def test_get_missing_key_returns_empty_list(event_store):
    assert event_store.get('2025-01-01') == []
    assert '2025-01-01' not in event_store


def test_upsert_appends_in_creation_order(event_store):
    event_store.upsert('2025-01-10', UserEvent(id='1', title='A', type='work'))
    event_store.upsert('2025-01-10', UserEvent(id='2', title='B', type='work'))

    assert [e.id for e in event_store.get('2025-01-10')] == ['1', '2']


def test_upsert_replaces_in_place(event_store):
    """Test that updating keeps the event's position."""
    event_store.upsert('2025-01-10', UserEvent(id='1', title='A', type='work'))
    event_store.upsert('2025-01-10', UserEvent(id='2', title='B', type='work'))
    event_store.upsert('2025-01-10', UserEvent(id='1', title='A2', type='personal'))

    events = event_store.get('2025-01-10')
    assert [e.title for e in events] == ['A2', 'B']
    assert events[0].type == 'personal'


def test_upsert_rejects_holiday(event_store):
    holiday = HolidayEvent(id='holiday-abc', title='Navidad')

    with pytest.raises(PreconditionViolation):
        event_store.upsert('2025-12-25', holiday)
    assert '2025-12-25' not in event_store


def test_remove_last_event_drops_bucket(event_store, sample_event):
    """Test that deleting the last event removes the date key."""
    event_store.upsert('2025-01-15', sample_event)

    assert event_store.remove('2025-01-15', sample_event.id) is True

    assert event_store.get('2025-01-15') == []
    assert '2025-01-15' not in event_store.date_keys()
    assert len(event_store) == 0


def test_remove_keeps_other_events(event_store):
    event_store.upsert('2025-01-10', UserEvent(id='1', title='A', type='work'))
    event_store.upsert('2025-01-10', UserEvent(id='2', title='B', type='work'))

    event_store.remove('2025-01-10', '1')

    assert [e.id for e in event_store.get('2025-01-10')] == ['2']


def test_remove_unknown_event(event_store, sample_event):
    event_store.upsert('2025-01-15', sample_event)

    assert event_store.remove('2025-01-15', 'missing') is False
    assert event_store.remove('2025-02-01', sample_event.id) is False
    assert len(event_store.get('2025-01-15')) == 1


def test_get_returns_copy(event_store, sample_event):
    event_store.upsert('2025-01-15', sample_event)

    event_store.get('2025-01-15').clear()

    assert len(event_store.get('2025-01-15')) == 1


def test_find(event_store, sample_event):
    event_store.upsert('2025-01-15', sample_event)

    assert event_store.find('2025-01-15', sample_event.id) == sample_event
    assert event_store.find('2025-01-15', 'missing') is None


def test_save_load_round_trip(blob_store, event_store, sample_event):
    """Test save followed by load reproduces the same mapping."""
    event_store.upsert('2025-01-15', sample_event)
    event_store.upsert('2025-01-15', UserEvent(id='2', title='Gym', type='personal'))
    event_store.upsert('2025-03-02', UserEvent(id='3', title='Call', type='work', time='16:30'))
    event_store.save()

    reloaded = EventStore(blob_store)
    loaded = reloaded.load()

    assert loaded == event_store.as_dict()
    assert [e.id for e in loaded['2025-01-15']] == [sample_event.id, '2']


def test_save_writes_json_without_read_only_flag(blob_store, event_store, sample_event):
    event_store.upsert('2025-01-15', sample_event)
    event_store.save()

    stored = json.loads(blob_store.read('calendarEvents'))

    assert stored == {
        '2025-01-15': [{
            'id': '1736935200000',
            'title': 'Team meeting',
            'type': 'meeting',
            'time': '09:00',
            'duration': 30,
            'description': 'Weekly sync',
            'priority': 'high',
        }]
    }


def test_save_explicit_mapping(blob_store, event_store, sample_event):
    event_store.save({'2025-01-15': [sample_event]})

    assert list(json.loads(blob_store.read('calendarEvents'))) == ['2025-01-15']


def test_load_missing_blob(event_store):
    assert event_store.load() == {}


@pytest.mark.parametrize('payload', [
    'not json{',
    '[1, 2, 3]',
    '"text"',
    '',
])
def test_load_corrupt_blob_returns_empty(blob_store, payload):
    """Test that corrupt data falls back to an empty mapping."""
    blob_store.write('calendarEvents', payload)

    assert EventStore(blob_store).load() == {}


def test_load_read_failure_returns_empty():
    failing = Mock()
    failing.read.side_effect = OSError('disk unavailable')

    store = EventStore(failing)

    assert store.load() == {}


def test_load_skips_malformed_entries(blob_store):
    """Test that malformed events and dates are skipped."""
    blob_store.write('calendarEvents', json.dumps({
        '2025-01-15': [
            {'id': '1', 'title': 'Valid', 'type': 'work'},
            {'title': 'Missing id'},
            'not an object',
            {'id': '2', 'title': 'Bad duration', 'type': 'work', 'duration': 'abc'},
        ],
        '2025-01-16': [{'id': '3', 'title': '   ', 'type': 'work'}],
        '2025-01-17': 'not a list',
        'yesterday': [{'id': '4', 'title': 'Bad key', 'type': 'work'}],
        '2025-1-5': [{'id': '5', 'title': 'Unpadded key', 'type': 'work'}],
        '2025-02-31': [{'id': '6', 'title': 'Impossible date', 'type': 'work'}],
    }))

    loaded = EventStore(blob_store).load()

    assert list(loaded) == ['2025-01-15']
    assert [e.id for e in loaded['2025-01-15']] == ['1']


def test_load_browser_shape(blob_store):
    """Test events stored with empty strings for missing fields."""
    blob_store.write('calendarEvents', json.dumps({
        '2025-01-15': [{
            'id': '1736935200000',
            'title': 'Dentist',
            'type': 'personal',
            'time': '',
            'duration': '45',
            'description': '',
            'priority': 'medium',
        }]
    }))

    event = EventStore(blob_store).load()['2025-01-15'][0]

    assert event.time is None
    assert event.duration == 45
    assert event.description == ''


def test_save_quota_exceeded_raises_but_keeps_memory(sample_event):
    """Test that a failed write raises PersistenceError and keeps the edit."""
    store = EventStore(MemoryBlobStore(quota_bytes=10))
    store.upsert('2025-01-15', sample_event)

    with pytest.raises(PersistenceError):
        store.save()

    assert store.get('2025-01-15') == [sample_event]


def test_memory_blob_store_quota():
    blobs = MemoryBlobStore(quota_bytes=4)

    blobs.write('small', 'abcd')
    with pytest.raises(BlobQuotaExceededError):
        blobs.write('big', 'abcde')

    assert blobs.read('small') == 'abcd'
    assert blobs.read('big') is None


class TestFileBlobStore:
    """Test cases for FileBlobStore."""

    def test_read_missing(self, tmp_path):
        blobs = FileBlobStore(tmp_path / 'data')

        assert blobs.read('calendarEvents') is None

    def test_write_and_read(self, tmp_path):
        blobs = FileBlobStore(tmp_path / 'data')

        blobs.write('calendarEvents', '{"a": 1}')

        assert blobs.read('calendarEvents') == '{"a": 1}'
        assert (tmp_path / 'data' / 'calendarEvents.json').exists()
        assert [p.name for p in (tmp_path / 'data').iterdir()] == ['calendarEvents.json']

    def test_event_store_round_trip(self, tmp_path, sample_event):
        store = EventStore(FileBlobStore(tmp_path))
        store.upsert('2025-01-15', sample_event)
        store.save()

        loaded = EventStore(FileBlobStore(tmp_path)).load()

        assert loaded == {'2025-01-15': [sample_event]}

    def test_write_failure_becomes_persistence_error(self, tmp_path, sample_event):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')
        store = EventStore(FileBlobStore(blocker / 'data'))
        store.upsert('2025-01-15', sample_event)

        with pytest.raises(PersistenceError):
            store.save()


@pytest.mark.parametrize('bad_time', [900, '9:00', '25:00', ['09:00']])
def test_load_skips_events_with_malformed_time(blob_store, bad_time):
    """Test that a stored time which is not HH:MM drops the entry."""
    blob_store.write('calendarEvents', json.dumps({
        '2025-01-15': [
            {'id': '1', 'title': 'Bad time', 'type': 'work', 'time': bad_time},
            {'id': '2', 'title': 'Good time', 'type': 'work', 'time': '10:00'},
        ]
    }))
    store = EventStore(blob_store)

    loaded = store.load()

    assert [e.id for e in loaded['2025-01-15']] == ['2']
    builder = CalendarGridBuilder()
    assert [e.title for e in builder.day_events('2025-01-15', store, None)] == ['Good time']
