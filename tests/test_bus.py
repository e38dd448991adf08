from pytest import raises

from lachesis.bus import DataPoint, MemoryBus


def test_memory_bus():
    bus = MemoryBus()
    assert 'voltage' not in bus
    with raises(KeyError, match='voltage'):
        bus.get_value('voltage')

    bus.publish('voltage', 3.9, 1000)
    point = bus.get_value('voltage')
    assert point == DataPoint(3.9, 1000.)
    assert point.value == 3.9
    assert point.timestamp == 1000.

    # Later values replace earlier ones
    bus.publish('voltage', 3.8, 2000)
    assert bus.get_value('voltage').value == 3.8
    assert list(bus) == ['voltage']


def test_missing_signal_logged(caplog):
    bus = MemoryBus()
    with caplog.at_level('DEBUG', logger='lachesis.bus'):
        with raises(KeyError):
            bus.get_value('power')
    assert 'power' in caplog.text
