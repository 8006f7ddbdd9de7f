# p6_source.py
#
# Raw byte sources for the encoder

CHUNK = 8192


# Generate the bytes of a binary file, read sequentially in chunks
def generate_raw_bytes(f):
    while True:
        chunk = f.read(CHUNK)
        if not chunk:
            break
        yield from bytearray(chunk)
