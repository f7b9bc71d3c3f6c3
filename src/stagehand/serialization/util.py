""" Length-prefixed, big endian binary stream helpers for save files. """

import io

def size_to_bytes(x:int) -> bytes:
    return x.to_bytes(4, byteorder="big", signed=False)

def size_to_f(x:int, f:io.IOBase) -> int:
    return f.write(size_to_bytes(x))

def size_from_f(f:io.IOBase) -> int:
    return int.from_bytes(_read_exactly(f, 4), byteorder="big")

def int_to_f(x:int, f:io.IOBase, blen:int=4, signed:bool=False) -> int:
    return f.write(x.to_bytes(blen, byteorder="big", signed=signed))

def int_from_f(f:io.IOBase, blen:int=4, signed:bool=False) -> int:
    return int.from_bytes(_read_exactly(f, blen), byteorder="big", signed=signed)

def to_len_pre_f(s:str, f:io.IOBase, blen:int=2) -> int:
    b = s.encode("utf8")
    prefix = len(b).to_bytes(blen, byteorder="big")
    i = f.write(prefix)
    i += f.write(b)
    return i

def from_len_pre_f(f:io.IOBase, blen:int=2) -> str:
    l = int.from_bytes(_read_exactly(f, blen), byteorder="big")
    return _read_exactly(f, l).decode("utf8")

def bool_to_f(b:bool, f:io.IOBase) -> int:
    return int_to_f(1 if b else 0, f, blen=1)

def bool_from_f(f:io.IOBase) -> bool:
    return int_from_f(f, blen=1) == 1

def debug_string_w(s:str, f:io.IOBase) -> int:
    """ writes a section marker so a reader can tell if it's lost its place """
    return to_len_pre_f(s, f)

def debug_string_r(s:str, f:io.IOBase) -> str:
    s_actual = from_len_pre_f(f)
    if s != s_actual:
        raise ValueError(f'expected section "{s}" got "{s_actual}" at {f.tell()}')
    return s_actual

def _read_exactly(f:io.IOBase, n:int) -> bytes:
    b = f.read(n)
    if b is None or len(b) != n:
        raise ValueError(f'truncated save data, wanted {n} bytes got {0 if b is None else len(b)}')
    return b
