"""Reference runtime for OpenPID wire formats."""

from .bitstream import BitStream as BitStream
from .bitstream import BitStreamError as BitStreamError
from .serialization import SerializationError as SerializationError
from .serialization import codec_for as codec_for
from .serialization import decode_payload as decode_payload
from .serialization import encode_payload as encode_payload
from .serialization import payload_codec as payload_codec
from .serialization import struct_codec as struct_codec
