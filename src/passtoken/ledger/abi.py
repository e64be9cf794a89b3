"""Minimal ABIs for the confidential token deployment."""

# Encrypted uint32 input struct accepted by the contracts
IN_EUINT32 = {
    "components": [
        {"name": "ctHash", "type": "uint256"},
        {"name": "securityZone", "type": "uint8"},
        {"name": "utype", "type": "uint8"},
        {"name": "signature", "type": "bytes"},
    ],
    "name": "",
    "type": "tuple",
    "internalType": "struct InEuint32",
}


def _in_euint32(name: str) -> dict:
    return dict(IN_EUINT32, name=name)


def _view(name: str, inputs: list, output_type: str) -> dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": inputs,
        "outputs": [{"name": "", "type": output_type}],
    }


def _write(name: str, inputs: list) -> dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": inputs,
        "outputs": [],
    }


PASS_TOKEN_ABI = [
    _view("isPasswordRequired", [{"name": "account", "type": "address"}], "bool"),
    _view("getPasswordHandle", [{"name": "account", "type": "address"}], "uint256"),
    _view("balanceHandle", [{"name": "account", "type": "address"}], "uint256"),
    _view("vault", [], "address"),
    _write("setPassword", [_in_euint32("encryptedPassword")]),
    _write("setPasswordProtection", [{"name": "enabled", "type": "bool"}]),
    _write(
        "transferEncrypted",
        [
            {"name": "to", "type": "address"},
            _in_euint32("encryptedAmount"),
            _in_euint32("encryptedPassword"),
        ],
    ),
]

VAULT_ABI = [
    _view("pToken", [], "address"),
    _view("uToken", [], "address"),
    _write("deposit", [{"name": "amount", "type": "uint32"}]),
    _write(
        "requestWithdraw",
        [{"name": "amount", "type": "uint32"}, _in_euint32("encryptedPassword")],
    ),
    _write("finalizeWithdraw", [{"name": "requestId", "type": "uint256"}]),
    {
        "name": "WithdrawalRequested",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "requestId", "type": "uint256", "indexed": True},
            {"name": "user", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint32", "indexed": False},
        ],
    },
]

ERC20_ABI = [
    _view("balanceOf", [{"name": "account", "type": "address"}], "uint256"),
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

WITHDRAWAL_REQUESTED_ARGS = ("requestId", "user", "amount")
