import hashlib
import math
import re

def normalize_address(addr: str) -> str:
    """
    Minimal normalization so cache keys & seeds are stable:
    - trim whitespace
    - lowercase
    - collapse multiple spaces
    """
    return " ".join(addr.strip().lower().split())

def fnv1a_32(s: str) -> int:
    """Deterministic, fast hash for seed generation and cache signatures."""
    h = 0x811c9dc5
    for c in s.encode("utf-8"):
        h ^= c
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h

def seeded_rand(seed: int, n: int = 1) -> list[float]:
    """
    Stateless pseudo-random generator (Mulberry32-like) so
    same seed → same outputs without storing PRNG state.
    """
    out = []
    t = (seed + 0x6D2B79F5) & 0xFFFFFFFF
    for _ in range(n):
        t = (t ^ (t >> 15)) * (t | 1) & 0xFFFFFFFF
        t ^= t + ((t ^ (t >> 7)) * (t | 61) & 0xFFFFFFFF)
        r = ((t ^ (t >> 14)) & 0xFFFFFFFF) / 4294967296.0
        out.append(r)
    return out

def round_money(x: float) -> int:
    """Round half up to whole currency units (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(x + 0.5))

def round_to(x: float, digits: int) -> float:
    """Half-up rounding to `digits` decimals, immune to binary artefacts like 0.145."""
    scale = 10 ** digits
    return math.floor(x * scale + 0.5 + 1e-9) / scale

_THOUSANDS = re.compile(r"^-?\d{1,3}(\.\d{3})+$")

def parse_number(raw) -> float | None:
    """
    Accepts numbers and German formatted strings:
    "1.200,50" -> 1200.5, "140" -> 140.0, "1.200" -> 1200.0, "85,5 m²" -> 85.5.
    Empty input gives None; anything else unparseable raises ValueError.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError("boolean is not a number")
    if isinstance(raw, (int, float)):
        return float(raw)
    s = str(raw).strip().replace("€", "").replace("m²", "").replace("qm", "")
    s = s.replace("\u00a0", "").replace(" ", "")
    if not s:
        return None
    if "," in s and "." in s:
        s = s.replace(".", "").replace(",", ".")
    elif "," in s:
        s = s.replace(",", ".")
    elif _THOUSANDS.match(s):
        s = s.replace(".", "")
    return float(s)

_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})

def slugify(name: str) -> str:
    """'Frankfurt am Main' -> 'frankfurt-am-main', 'Düsseldorf' -> 'duesseldorf'."""
    s = name.strip().lower().translate(_UMLAUTS)
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")

def weak_etag(payload_bytes: bytes) -> str:
    """Weak ETag for client-side conditional requests."""
    h = hashlib.sha256(payload_bytes).hexdigest()[:24]
    return f'W/"{h}"'
