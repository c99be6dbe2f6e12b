"""Build `EventShape` objects from Solidity event signatures.

Example input:
  "DepositEvent(bytes pubkey, bytes whitdrawalcred, bytes amount, bytes signature, bytes index)"
"""

from __future__ import annotations

from eth_utils import keccak

from .specs import EventShape, FieldSpec


# ---- Helpers: parse the parameter list ----
def _split_params(params_str: str) -> list[str]:
    """Split the parameter list by commas while respecting nested tuple types."""
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in params_str:
        if ch == '(':
            depth += 1
            buf.append(ch)
        elif ch == ')':
            depth -= 1
            buf.append(ch)
        elif ch == ',' and depth == 0:
            items.append(''.join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if buf:
        items.append(''.join(buf).strip())
    return [i for i in items if i]


def _parse_param(p: str, fallback_name: str) -> tuple[str, str, bool]:
    """Parse one parameter fragment into (name, abi_type, indexed)."""
    s = ' '.join(p.split())  # normalize whitespace, incl. newlines
    indexed = False
    if ' indexed ' in f' {s} ':
        indexed = True
        s = f' {s} '.replace(' indexed ', ' ').strip()
    tokens = s.split()
    if len(tokens) == 1:
        # Unnamed parameter
        return (fallback_name, tokens[0], indexed)
    # Last token is the name, the rest is the type (can include tuple syntax)
    return (tokens[-1], ' '.join(tokens[:-1]), indexed)


def canonical_signature(name: str, types: list[str]) -> str:
    return f"{name}({','.join(types)})"


def event_topic0(signature: str) -> str:
    """keccak256 of the canonical signature as lowercased 0x-hex."""
    return '0x' + keccak(text=signature).hex()


def event_shape_from_signature(signature: str) -> EventShape:
    """Build an EventShape from a Solidity event signature string."""
    sig = signature.strip()
    open_paren = sig.find('(')
    close_paren = sig.rfind(')')
    if open_paren <= 0 or close_paren < open_paren:
        raise ValueError(f"Invalid event signature: {signature}")
    name = sig[:open_paren].strip()
    params_str = sig[open_paren + 1 : close_paren]

    parsed = [
        _parse_param(part, fallback_name=f"arg{i}")
        for i, part in enumerate(_split_params(params_str))
    ]

    fields: list[FieldSpec] = []
    topic_pos = 1  # topic 0 is the event id
    word_pos = 0
    for field_name, abi_type, is_indexed in parsed:
        if is_indexed:
            fields.append(FieldSpec(field_name, abi_type, True, topic_pos))
            topic_pos += 1
        else:
            fields.append(FieldSpec(field_name, abi_type, False, word_pos))
            word_pos += 1

    topic0 = event_topic0(canonical_signature(name, [t for (_, t, _) in parsed]))
    return EventShape(name=name, topic0=topic0, fields=tuple(fields))
