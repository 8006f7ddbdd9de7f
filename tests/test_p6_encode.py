import io
import sys
import wave

import pytest

from p6_config import EncoderConfig, FORMAT_BIN
from p6_encode import main, p6_write_wav
from p6_ihex import load_intel_hex
from p6_source import generate_raw_bytes
from tape_helpers import EOF_LINE, ihex_record

FAST = ["-f", "b0.1 h0.1 d h0.05 b0.1"]


@pytest.fixture
def payload(tmp_path):
    path = tmp_path / "game.bin"
    path.write_bytes(b"\x10\x20\x30PC-6001")
    return path


@pytest.fixture
def hexfile(tmp_path):
    path = tmp_path / "game.hex"
    text = ihex_record(0x00, 0xC000, b"\x3e\x01\xc9")
    path.write_text(text + EOF_LINE)
    return path


def run(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


def test_encode_file(payload, tmp_path):
    out = tmp_path / "game.wav"
    main(FAST + [str(payload), str(out)])

    config = EncoderConfig(format=FAST[1])
    expected = io.BytesIO()
    p6_write_wav(expected, payload.read_bytes(), config)
    assert out.read_bytes() == expected.getvalue()


def test_options_reach_the_encoder(payload, tmp_path):
    out = tmp_path / "game.wav"
    argv = ["-b", "1200", "-w", "2400", "-r", "44100", "-q", "16", "-c", "2", "-s", "2"]
    main(argv + FAST + [str(payload), str(out)])

    with wave.open(str(out), "rb") as wf:
        assert wf.getnchannels() == 2
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 44100


def test_format_preset(payload, tmp_path):
    preset = tmp_path / "preset.wav"
    literal = tmp_path / "literal.wav"
    main(["-f", "bin", str(payload), str(preset)])
    main(["-f", FORMAT_BIN, str(payload), str(literal)])
    assert preset.read_bytes() == literal.read_bytes()


@pytest.mark.parametrize("argv", [[], ["only-one"], ["a", "b", "c"]])
def test_usage(argv, capsys):
    assert run(argv) == 1
    assert "usage" in capsys.readouterr().err.lower()


@pytest.mark.parametrize(
    "argv, message",
    [
        (["-b", "0"], "illegal baud rate"),
        (["-c", "3"], "the number of channels must be 1 or 2"),
        (["-q", "12"], "sampling bit must be 8 or 16"),
        (["-r", "0"], "illegal sampling rate"),
        (["-s", "-1"], "illegal stop bit"),
        (["-w", "1000"], "illegal carrier frequency"),
        (["-r", "8000"], "too low sampling rate"),
        (["-f", "b1e400 d"], "illegal duration in format: b1e400"),
        (["-f", "h2 h1e999"], "illegal duration in format: h1e999"),
    ],
)
def test_bad_config(argv, message, payload, tmp_path, capsys):
    out = tmp_path / "game.wav"
    assert run(argv + [str(payload), str(out)]) == 1
    assert message in capsys.readouterr().err
    assert not out.exists()


def test_non_numeric_option(payload, tmp_path):
    assert run(["-b", "fast", str(payload), str(tmp_path / "game.wav")]) == 1


def test_missing_input(tmp_path, capsys):
    assert run([str(tmp_path / "nope.bin"), str(tmp_path / "game.wav")]) == 1
    assert "cannot open" in capsys.readouterr().err


def test_intel_hex_input(hexfile, tmp_path):
    out = tmp_path / "game.wav"
    main(FAST + ["-i", str(hexfile), str(out)])

    image = load_intel_hex(hexfile.read_text())
    expected = io.BytesIO()
    p6_write_wav(expected, image.iter_records(), EncoderConfig(format=FAST[1]))
    assert out.read_bytes() == expected.getvalue()


def test_intel_hex_raw_image(hexfile, tmp_path):
    out = tmp_path / "game.wav"
    main(FAST + ["-i", "--raw-image", str(hexfile), str(out)])

    expected = io.BytesIO()
    p6_write_wav(expected, b"\x3e\x01\xc9", EncoderConfig(format=FAST[1]))
    assert out.read_bytes() == expected.getvalue()


def test_raw_image_needs_intel_hex(payload, tmp_path):
    assert run(["--raw-image", str(payload), str(tmp_path / "game.wav")]) == 1


def test_bad_intel_hex_writes_nothing(tmp_path, capsys):
    bad = tmp_path / "bad.hex"
    bad.write_text(":0300300002337A1F\n" + EOF_LINE)
    out = tmp_path / "game.wav"

    assert run(["-i", str(bad), str(out)]) == 1
    assert "checksum error" in capsys.readouterr().err
    assert not out.exists()


def test_stdin_input(monkeypatch, tmp_path):
    text = ihex_record(0x00, 0xC000, b"\x3e\x01\xc9") + EOF_LINE
    stdin = io.TextIOWrapper(io.BytesIO(text.encode("ascii")))
    monkeypatch.setattr(sys, "stdin", stdin)
    out = tmp_path / "game.wav"
    main(FAST + ["-i", "-", str(out)])

    with wave.open(str(out), "rb") as wf:
        assert wf.getnframes() > 0


def test_non_seekable_output(monkeypatch, payload, non_seekable_sink, capsys):
    stdout = io.TextIOWrapper(io.BufferedWriter(non_seekable_sink))
    monkeypatch.setattr(sys, "stdout", stdout)
    assert run(FAST + [str(payload), "-"]) == 1
    assert "WAV header" in capsys.readouterr().err


def test_plot(payload, tmp_path):
    pytest.importorskip("matplotlib")
    out = tmp_path / "game.wav"
    png = tmp_path / "game.png"
    main(FAST + ["--plot", str(png), "--plot-length", "0.05", str(payload), str(out)])
    assert png.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_plot_needs_output_file(payload):
    assert run(["--plot", "x.png", str(payload), "-"]) == 1


def test_raw_source_reads_in_chunks():
    data = bytes(range(256)) * 100
    assert bytes(generate_raw_bytes(io.BytesIO(data))) == data
