import base58
import bech32m

NETWORK_PARAMS = {
    "mainnet": {"p2pkh": 0x00, "p2sh": 0x05, "hrp": "bc"},
    "testnet": {"p2pkh": 0x6F, "p2sh": 0xC4, "hrp": "tb"},
    "regtest": {"p2pkh": 0x6F, "p2sh": 0xC4, "hrp": "bcrt"},
}

OP_RETURN_ADDRESS = "OP_Return"


def get_script_type(script_hex: str) -> str:
    """Identify Bitcoin script type"""
    if not script_hex:
        return "unknown"

    try:
        script_bytes = bytes.fromhex(script_hex)
    except ValueError:
        return "unknown"

    if not script_bytes:
        return "unknown"

    # OP_RETURN (starts with 0x6a)
    if script_bytes[0] == 0x6A:
        return "op_return"

    # P2PKH (25 bytes: OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG)
    if (
        len(script_bytes) == 25
        and script_bytes[0] == 0x76
        and script_bytes[1] == 0xA9
        and script_bytes[2] == 0x14
        and script_bytes[23] == 0x88
        and script_bytes[24] == 0xAC
    ):
        return "p2pkh"

    # P2SH (23 bytes: OP_HASH160 <20 bytes> OP_EQUAL)
    if len(script_bytes) == 23 and script_bytes[0] == 0xA9 and script_bytes[1] == 0x14 and script_bytes[22] == 0x87:
        return "p2sh"

    # P2WPKH (22 bytes: OP_0 <20 bytes>)
    if len(script_bytes) == 22 and script_bytes[0] == 0x00 and script_bytes[1] == 0x14:
        return "p2wpkh"

    # P2WSH (34 bytes: OP_0 <32 bytes>)
    if len(script_bytes) == 34 and script_bytes[0] == 0x00 and script_bytes[1] == 0x20:
        return "p2wsh"

    # P2TR (34 bytes: OP_1 <32 bytes>)
    if len(script_bytes) == 34 and script_bytes[0] == 0x51 and script_bytes[1] == 0x20:
        return "p2tr"

    return "unknown"


def extract_address_from_script(script_hex: str, network: str = "mainnet") -> str | None:
    """
    Derive an address from an output script

    SUPPORTS:
    - P2PKH (Pay to Public Key Hash)
    - P2SH (Pay to Script Hash)
    - P2WPKH (Pay to Witness Public Key Hash)
    - P2WSH (Pay to Witness Script Hash)
    - P2TR (Pay to Taproot)
    """
    script_type = get_script_type(script_hex)
    if script_type in ("unknown", "op_return"):
        return None

    params = NETWORK_PARAMS.get(network, NETWORK_PARAMS["mainnet"])
    script_bytes = bytes.fromhex(script_hex)

    if script_type == "p2pkh":
        hash160 = script_bytes[3:23]
        return base58.b58encode_check(bytes([params["p2pkh"]]) + hash160).decode()

    if script_type == "p2sh":
        hash160 = script_bytes[2:22]
        return base58.b58encode_check(bytes([params["p2sh"]]) + hash160).decode()

    if script_type == "p2wpkh":
        return bech32m.encode(params["hrp"], 0, script_bytes[2:22])

    if script_type == "p2wsh":
        return bech32m.encode(params["hrp"], 0, script_bytes[2:34])

    if script_type == "p2tr":
        return bech32m.encode(params["hrp"], 1, script_bytes[2:34])

    return None


def is_op_return_script(script_hex: str) -> bool:
    """Check if script is OP_RETURN"""
    return get_script_type(script_hex) == "op_return"


def get_node_address(script_pub_key: dict) -> str | None:
    """Address reported by the node, older nodes use an "addresses" list"""
    addresses = script_pub_key.get("addresses")
    if isinstance(addresses, list) and addresses:
        return addresses[0]
    address = script_pub_key.get("address")
    if isinstance(address, str) and address:
        return address
    return None
