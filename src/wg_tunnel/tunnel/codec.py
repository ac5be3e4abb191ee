"""Conversion between TunnelConfig and the wg-quick text format.

The text layout is the one ``wg-quick`` reads::

    [Interface]
    PrivateKey = <base64>
    Address = 10.0.0.2/24
    DNS = 1.1.1.1

    [Peer]
    PublicKey = <base64>
    Endpoint = vpn.example.com:51820
    AllowedIPs = 0.0.0.0/0
    PersistentKeepalive = 25

Key names and section markers are case-sensitive. Unknown keys are ignored.
Only one peer is modeled; a second ``[Peer]`` section overwrites the first.
"""

from pydantic import ValidationError

from ..common.exceptions import MalformedFieldError, MissingFieldError
from ..common.logging import get_logger
from .models import DEFAULT_ALLOWED_IPS, DEFAULT_CONFIG_NAME, TunnelConfig

logger = get_logger(__name__)

INTERFACE_SECTION = "Interface"
PEER_SECTION = "Peer"

# text key -> TunnelConfig field, per section
INTERFACE_KEYS = {
    "PrivateKey": "private_key",
    "Address": "local_address",
    "DNS": "dns",
}
PEER_KEYS = {
    "PublicKey": "peer_public_key",
    "Endpoint": "endpoint",
    "AllowedIPs": "allowed_ips",
    "PersistentKeepalive": "keepalive_interval",
}
SECTION_KEYS = {INTERFACE_SECTION: INTERFACE_KEYS, PEER_SECTION: PEER_KEYS}

# Checked in this order so the first missing field reported is stable
REQUIRED_KEYS = ("PrivateKey", "Address", "PublicKey", "Endpoint")

FIELD_TO_KEY = {
    field: key for keys in SECTION_KEYS.values() for key, field in keys.items()
}


def _strip_comment(line: str) -> str:
    return line.split("#", 1)[0].strip()


def _parse_keepalive(value: str) -> int | None:
    if value.lower() == "off":
        return None
    try:
        interval = int(value)
    except ValueError:
        raise MalformedFieldError(
            "PersistentKeepalive", "must be an integer or 'off'"
        ) from None
    return interval or None


def parse(text: str, name: str = DEFAULT_CONFIG_NAME) -> TunnelConfig:
    """Parse wg-quick configuration text into a TunnelConfig.

    Args:
        text: Configuration text with ``[Interface]`` and ``[Peer]`` sections
        name: Display label for the resulting config

    Returns:
        Validated TunnelConfig

    Raises:
        MissingFieldError: If PrivateKey, Address, PublicKey or Endpoint is absent
        MalformedFieldError: If a recognized value is not acceptable
    """
    values: dict[str, str] = {}
    section: str | None = None
    peer_sections = 0

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue

        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip()
            if section == PEER_SECTION:
                peer_sections += 1
            continue

        line = _strip_comment(line)
        key, sep, value = line.partition("=")
        if not sep:
            continue

        key = key.strip()
        field = SECTION_KEYS.get(section or "", {}).get(key)
        if field is None:
            # unknown key or wrong section
            continue
        values[field] = value.strip()

    if peer_sections > 1:
        logger.warning(
            "Multiple peer sections found, only the last values are kept",
            peer_sections=peer_sections,
        )

    for key in REQUIRED_KEYS:
        field = INTERFACE_KEYS.get(key) or PEER_KEYS[key]
        if not values.get(field):
            raise MissingFieldError(key)

    kwargs: dict[str, object] = dict(values)
    kwargs["name"] = name
    if "keepalive_interval" in values:
        kwargs["keepalive_interval"] = _parse_keepalive(values["keepalive_interval"])
    if not values.get("allowed_ips"):
        kwargs["allowed_ips"] = DEFAULT_ALLOWED_IPS
    if "dns" in values and not values["dns"]:
        kwargs["dns"] = None

    return build_config(**kwargs)


def build_config(**fields: object) -> TunnelConfig:
    """Construct a TunnelConfig, mapping model errors into the taxonomy.

    Raises:
        MissingFieldError: If a required field is absent
        MalformedFieldError: If a field fails validation
    """
    try:
        return TunnelConfig(**fields)  # type: ignore[arg-type]
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else "config"
        key = FIELD_TO_KEY.get(field, field)
        if error["type"] == "missing":
            raise MissingFieldError(key) from None
        # from None: the chained pydantic error would carry the raw input
        raise MalformedFieldError(key, error["msg"]) from None


def serialize(config: TunnelConfig) -> str:
    """Render a TunnelConfig in the text form the helper consumes.

    PrivateKey, Address, PublicKey, Endpoint and AllowedIPs are always
    written; DNS and PersistentKeepalive only when set.

    Args:
        config: Configuration to render

    Returns:
        Configuration text ending in a newline
    """
    lines = [
        f"[{INTERFACE_SECTION}]",
        f"PrivateKey = {config.private_key.get_secret_value()}",
        f"Address = {config.local_address}",
    ]
    if config.dns:
        lines.append(f"DNS = {config.dns}")

    lines += [
        "",
        f"[{PEER_SECTION}]",
        f"PublicKey = {config.peer_public_key.get_secret_value()}",
        f"Endpoint = {config.endpoint}",
        f"AllowedIPs = {config.allowed_ips}",
    ]
    if config.keepalive_interval is not None:
        lines.append(f"PersistentKeepalive = {config.keepalive_interval}")

    return "\n".join(lines) + "\n"
