"""
lohigh: combine uncompressed PCM WAV files.

Modules:
  - io_utils: WAV probing, chunked reading, atomic writing, file discovery
  - validator: Pre-flight input checks and disk-space check
  - codec: Bit-depth and byte-order aware sample decoding
  - dsp_utils: Peak detection, normalization, crossfade, looping
  - combiner: Two-file combination pipeline
  - chainer: Pairwise chaining of N files (playlist mode)
  - playlist, ambient, stdio: Helpers for the command-line front end
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
