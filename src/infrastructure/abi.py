"""
Infrastructure: Contract ABIs
Only the functions and events this client uses.
"""
from typing import Any, Dict, List


def _fn(name: str, inputs: List[Dict[str, Any]], outputs: List[Dict[str, Any]], mutability: str = "view") -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs,
        "stateMutability": mutability,
    }


def _arg(name: str, type_: str, **extra: Any) -> Dict[str, Any]:
    return {"name": name, "type": type_, "internalType": type_, **extra}


_TOKEN_INFO = {
    "name": "",
    "type": "tuple",
    "internalType": "struct NFT.TokenInfo",
    "components": [
        _arg("tokenId", "uint256"),
        _arg("tokenURI", "string"),
        _arg("owner", "address"),
        _arg("creator", "address"),
        _arg("mintedAt", "uint256"),
        _arg("royaltyFee", "uint256"),
        _arg("lastSoldPrice", "uint256"),
    ],
}

_TOKEN_INFO_LIST = {**_TOKEN_INFO, "type": "tuple[]", "internalType": "struct NFT.TokenInfo[]"}

_LISTING = {
    "name": "",
    "type": "tuple",
    "internalType": "struct NFTMarketplace.Listing",
    "components": [
        _arg("tokenContract", "address"),
        _arg("tokenId", "uint256"),
        _arg("seller", "address"),
        _arg("price", "uint256"),
        _arg("canceledAt", "uint256"),
        _arg("soldAt", "uint256"),
    ],
}

_LISTING_LIST = {**_LISTING, "type": "tuple[]", "internalType": "struct NFTMarketplace.Listing[]"}


TOKEN_ABI: List[Dict[str, Any]] = [
    _fn("mint", [_arg("cid", "string"), _arg("royaltyFee", "uint256")], [_arg("", "uint256")], "nonpayable"),
    _fn("getTokenInfoById", [_arg("tokenId", "uint256")], [_TOKEN_INFO]),
    _fn("getTokenInfoByOwner", [_arg("owner", "address")], [_TOKEN_INFO_LIST]),
    _fn("getTokenInfoByCreator", [_arg("creator", "address")], [_TOKEN_INFO_LIST]),
    _fn(
        "transfer",
        [_arg("from", "address"), _arg("to", "address"), _arg("tokenId", "uint256")],
        [],
        "nonpayable",
    ),
    _fn("approve", [_arg("to", "address"), _arg("tokenId", "uint256")], [], "nonpayable"),
    _fn("setApprovalForAll", [_arg("operator", "address"), _arg("approved", "bool")], [], "nonpayable"),
    _fn("isApprovedForAll", [_arg("owner", "address"), _arg("operator", "address")], [_arg("", "bool")]),
    _fn("getApproved", [_arg("tokenId", "uint256")], [_arg("", "address")]),
    {
        "type": "event",
        "name": "NFTMinted",
        "anonymous": False,
        "inputs": [
            _arg("tokenId", "uint256", indexed=True),
            _arg("creator", "address", indexed=True),
            _arg("tokenURI", "string", indexed=False),
            _arg("royaltyFee", "uint256", indexed=False),
        ],
    },
]


MARKETPLACE_ABI: List[Dict[str, Any]] = [
    _fn("getListingFee", [], [_arg("", "uint256")]),
    _fn(
        "listItem",
        [_arg("tokenContract", "address"), _arg("tokenId", "uint256"), _arg("price", "uint256")],
        [],
        "payable",
    ),
    _fn("cancelListing", [_arg("tokenContract", "address"), _arg("tokenId", "uint256")], [], "nonpayable"),
    _fn(
        "updateListingPrice",
        [_arg("tokenContract", "address"), _arg("tokenId", "uint256"), _arg("newPrice", "uint256")],
        [],
        "nonpayable",
    ),
    _fn("buyItem", [_arg("tokenContract", "address"), _arg("tokenId", "uint256")], [], "payable"),
    _fn("getListingById", [_arg("tokenContract", "address"), _arg("tokenId", "uint256")], [_LISTING]),
    _fn("getAllListings", [], [_LISTING_LIST]),
    _fn(
        "getHistoricalTransaction",
        [_arg("tokenContract", "address"), _arg("tokenId", "uint256")],
        [
            _arg("startBlock", "uint256"),
            _arg("latestBlock", "uint256"),
            _arg("startTimestamp", "uint256"),
            _arg("latestTimestamp", "uint256"),
            _arg("totalCount", "uint256"),
        ],
    ),
    {
        "type": "event",
        "name": "ItemSold",
        "anonymous": False,
        "inputs": [
            _arg("tokenContract", "address", indexed=True),
            _arg("tokenId", "uint256", indexed=True),
            _arg("seller", "address", indexed=True),
            _arg("buyer", "address", indexed=False),
            _arg("price", "uint256", indexed=False),
            _arg("timestamp", "uint256", indexed=False),
        ],
    },
]
