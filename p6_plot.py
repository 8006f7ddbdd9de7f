# p6_plot.py
#
# Waveform preview of an encoded tape, for checking levels and tone
# changes by eye before recording to cassette.

import wave

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402


# Read the left-most channel of a PCM WAV file as floats in [-1, 1]
def read_wav_samples(path):
    with wave.open(path, "rb") as wf:
        nchannels = wf.getnchannels()
        samplewidth = wf.getsampwidth()
        framerate = wf.getframerate()
        frames = wf.readframes(wf.getnframes())

    if samplewidth == 1:
        samples = (np.frombuffer(frames, dtype=np.uint8).astype(np.float64) - 128) / 127
    else:
        samples = np.frombuffer(frames, dtype="<i2").astype(np.float64) / 32767
    return samples[::nchannels], framerate


def plot_wav(wav_path, image_path, start=0.0, length=None):
    """
    Save a time/amplitude plot of `wav_path` to `image_path`, optionally
    limited to `length` seconds beginning at `start`.
    """
    samples, framerate = read_wav_samples(wav_path)
    first = int(start * framerate)
    last = len(samples) if length is None else first + int(length * framerate)
    window = samples[first:last]
    t = (np.arange(len(window)) + first) / framerate

    fig, ax = plt.subplots(figsize=(15, 5))
    ax.plot(t, window, c="red", linewidth=0.5)
    ax.set_xlabel("time (s)")
    ax.set_ylabel("amplitude")
    ax.set_ylim(-1.1, 1.1)
    fig.savefig(image_path)
    plt.close(fig)
