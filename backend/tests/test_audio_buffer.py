from live_translate.services.audio_buffer import AudioBuffer


def test_empty_buffer():
    buf = AudioBuffer()
    assert buf.is_empty()
    assert buf.size == 0
    assert buf.drain_all() == b""


def test_append_keeps_order_and_size():
    buf = AudioBuffer()
    buf.append(b"ab")
    buf.append(b"cde")
    assert buf.size == 5
    assert len(buf) == 5
    assert buf.chunk_count == 2
    assert buf.snapshot() == b"abcde"


def test_empty_fragment_ignored():
    buf = AudioBuffer()
    buf.append(b"")
    assert buf.is_empty()
    assert buf.appended_count == 0


def test_snapshot_does_not_consume():
    buf = AudioBuffer()
    buf.append(b"\x00" * 100)
    assert buf.snapshot() == b"\x00" * 100
    assert buf.size == 100


def test_drain_all_clears_without_loss_or_duplication():
    buf = AudioBuffer()
    buf.append(b"one")
    buf.append(b"two")
    assert buf.drain_all() == b"onetwo"
    assert buf.is_empty()
    buf.append(b"three")
    assert buf.drain_all() == b"three"


def test_appended_count_survives_clear():
    buf = AudioBuffer()
    buf.append(b"a")
    buf.append(b"b")
    buf.clear()
    assert buf.is_empty()
    assert buf.appended_count == 2
