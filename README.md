# pico_extras

Building blocks for streaming audio and describing scan-out video, in plain Python.
The package has no dependencies outside the standard library.

## What is in it

- `pico_extras.buffer`: `MemBuffer`, a sized block of memory. `alloc_buffer(size)` makes a
  zero-filled one. `wrap_buffer(data)` wraps an existing `bytearray` or `memoryview` without
  copying it; plain `bytes` are refused because they cannot be written.
- `pico_extras.audio`: audio formats (`AudioFormat`, `AudioBufferFormat`, `BufferFormat`),
  `CorrectionMode`, and buffers (`AudioBuffer`, made with `new_buffer` or
  `new_wrapping_buffer`). `AudioBufferPool` holds a free list, handed out last-in first-out, and
  a prepared list, handed out first-in first-out. Both are thread-safe and can block until a
  buffer arrives. `new_producer_pool` and `new_consumer_pool` create pools.
  `complete_connection` joins a pool of each kind through an `AudioConnection`. After that,
  `take`, `give` and `release` on a pool go through the connection.
- `pico_extras.conversion`: `SampleType` (U8, S8, U16, S16) and `ChannelFormat`, made with
  `mono()` or `stereo()`.
  - `convert_sample` and `converting_copy` convert between sample types and channel counts.
    Mono to stereo duplicates each sample; stereo to mono averages the pair.
  - `read_samples` and `write_samples` move samples in and out of an `AudioBuffer`.
  - Two connections convert as they copy. `BufferCopyingOnConsumerTakeConnection` fills a
    consumer buffer when the consumer takes one. `ProducerPoolBlockingGiveConnection` copies
    into consumer buffers when the producer gives one.
  - Ready-made connections: `mono_to_mono_connection`, `stereo_to_stereo_connection`,
    `mono_to_stereo_connection`, `mono_s8_to_mono_connection`,
    `mono_s8_to_stereo_connection` and `stereo_to_stereo_give_connection`.
- `pico_extras.pwm_encoding`: `PwmEncoder` turns the first channel of PCM samples into 32-bit
  PWM command words.
  - It has three correction modes: none, fixed dither and error-diffusion dither. The
    error-diffusion residue carries over from one call to the next.
  - `make_cmd`, `FIXED_DITHER_TABLE` and `silence_buffer()` come with it.
- `pico_extras.scanvideo`: `ScanvideoTiming`, `ScanvideoMode`, `ScanlineBuffer` and
  `ScanlineStatus`.
  - `frame_number` and `scanline_number` split a scanline id.
  - `pixel_from_rgb8`, `pixel_from_rgb5` and `r5_from_pixel` / `g5_from_pixel` /
    `b5_from_pixel` pack and unpack RGB555 pixels.
- `pico_extras.vga_modes`: the built-in table of VGA timings and modes.
  - `timings()` and `modes()` return the tables as dictionaries.
  - `get_timing(name)` and `get_mode(name)` accept full names (`vga_mode_640x480_60`) or
    short ones (`640x480_60`).
  - `use_48mhz=True` selects the set of timings for a 48 MHz system clock.
- `pico_extras.platypus`: `decompress_row(data, width, offset=0, rgb565=False)` decodes two
  lines of the 2x2-block compressed image format. It returns `DecodedRows`, which holds the
  words of each line and the word-aligned offset of the next row. `DecodedRows.pixels()` splits
  the words into 16-bit pixels.
- `pico_extras.rosc`: ring-oscillator drive-strength codes.
  - `next_rosc_code` steps to the next code and `rosc_codes()` yields all of them.
  - `find_freq(low_mhz, high_mhz, measure_mhz)` searches the codes with a measuring function
    that you supply.
  - `check_div` validates a divider in the range 1 to 31.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## A short tour

Moving audio from a producer to a consumer that expects stereo:

```python
from pico_extras import audio, conversion

fmt = audio.AudioFormat(sample_freq=44100, format=audio.BufferFormat.PCM_S16, channel_count=1)
producer = audio.new_producer_pool(audio.AudioBufferFormat(fmt, sample_stride=2), 3, 256)

out_fmt = audio.AudioFormat(sample_freq=44100, format=audio.BufferFormat.PCM_S16, channel_count=2)
consumer = audio.new_consumer_pool(audio.AudioBufferFormat(out_fmt, sample_stride=4), 2, 256)

connection = conversion.mono_to_stereo_connection()
audio.complete_connection(connection, producer, consumer)

buf = producer.take(block=False)
conversion.write_samples(buf, conversion.mono(conversion.SampleType.S16), 0, [100, -100])
buf.sample_count = 2
producer.give(buf)

out = consumer.take(block=False)
samples = conversion.read_samples(out, conversion.stereo(conversion.SampleType.S16), 0, out.sample_count)
# samples == [100, 100, -100, -100]
```

Encoding samples for PWM output:

```python
from pico_extras.audio import CorrectionMode
from pico_extras.conversion import SampleType, mono
from pico_extras.pwm_encoding import PwmEncoder

encoder = PwmEncoder()
encoder.set_correction_mode(CorrectionMode.NONE)
words = encoder.encode([0, 1000, -1000], mono(SampleType.S16))
```

Looking up a video mode:

```python
from pico_extras.vga_modes import get_mode

mode = get_mode("vga_mode_320x240_60", use_48mhz=False)
print(mode.width, mode.height, mode.default_timing.clock_freq)
```

## What it does not do

This package only computes and describes. It does not drive any output.

- Nothing plays audio. There is no I2S or PWM output, and nothing sends the command words
  made by `PwmEncoder` anywhere.
- Nothing generates or scans out video signals. The timings and modes are descriptions only.
- There is no SD card access.
- `find_freq` does not touch an oscillator. It relies on the `measure_mhz` function you pass in.
- There is no command-line program.