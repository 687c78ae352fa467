def _view(name: str, inputs: list[tuple[str, str]], output: str) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": output}],
    }


def _transfer_event(third: str, third_indexed: bool) -> dict:
    return {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": third, "type": "uint256", "indexed": third_indexed},
        ],
    }


ERC20_ABI = [
    _view("name", [], "string"),
    _view("symbol", [], "string"),
    _view("decimals", [], "uint8"),
    _view("totalSupply", [], "uint256"),
    _view("balanceOf", [("account", "address")], "uint256"),
    _transfer_event("value", third_indexed=False),
]

ERC721_ABI = [
    _view("name", [], "string"),
    _view("symbol", [], "string"),
    _view("totalSupply", [], "uint256"),
    _view("balanceOf", [("owner", "address")], "uint256"),
    _view("ownerOf", [("tokenId", "uint256")], "address"),
    _view("tokenURI", [("tokenId", "uint256")], "string"),
    _transfer_event("tokenId", third_indexed=True),
]

TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"
