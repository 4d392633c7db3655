"""
Treasury contract ABI (subset used by the backend)
"""


def _param(type_, name, indexed=None, components=None):
    param = {"type": type_, "name": name, "internalType": type_}
    if indexed is not None:
        param["indexed"] = indexed
    if components is not None:
        param["components"] = components
    return param


def _function(name, inputs=(), outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": list(inputs),
        "outputs": list(outputs),
        "stateMutability": mutability,
    }


def _event(name, inputs=()):
    return {"type": "event", "name": name, "inputs": list(inputs), "anonymous": False}


def _uint(name):
    return _param("uint256", name)


def _address(name):
    return _param("address", name)


def _string(name):
    return _param("string", name)

# Field order of the getAccount() tuple
ACCOUNT_FIELDS = (
    "owner", "approver", "label", "budgetPerPeriod", "periodDuration",
    "perTxLimit", "dailyLimit", "approvalThreshold", "periodSpent",
    "periodReserved", "dailySpent", "dailyReserved", "periodStart",
    "lastDayTimestamp", "status", "allowedChains", "minBalance", "targetBalance",
)

_ACCOUNT_TYPES = {
    "owner": "address", "approver": "address", "label": "string",
    "status": "uint8", "allowedChains": "uint256[]",
}

# Field order of the getRequest() tuple
REQUEST_FIELDS = (
    "accountId", "requester", "amount", "chainId", "destinationAddress",
    "description", "approved", "executed", "rejected", "gatewayTxId", "createdAt",
)

_REQUEST_TYPES = {
    "requester": "address", "destinationAddress": "address",
    "description": "string", "gatewayTxId": "string",
    "approved": "bool", "executed": "bool", "rejected": "bool",
}

_account_tuple = _param(
    "tuple", "",
    components=[_param(_ACCOUNT_TYPES.get(f, "uint256"), f) for f in ACCOUNT_FIELDS]
)
_request_tuple = _param(
    "tuple", "",
    components=[_param(_REQUEST_TYPES.get(f, "uint256"), f) for f in REQUEST_FIELDS]
)

TREASURY_ABI = [
    # Views
    _function("admin", outputs=[_address("")], mutability="view"),
    _function("paused", outputs=[_param("bool", "")], mutability="view"),
    _function("nextAccountId", outputs=[_uint("")], mutability="view"),
    _function("getAccount", [_uint("accountId")], [_account_tuple], mutability="view"),
    _function("getRequest", [_uint("requestId")], [_request_tuple], mutability="view"),

    # Backend operations
    _function("markSpendExecuted", [_uint("requestId"), _string("gatewayTxId")]),
    _function("markSpendFailed", [_uint("requestId"), _string("reason")]),
    _function("recordInboundFunding", [_uint("amount"), _string("gatewayTxId")]),

    # Admin operations
    _function("pause"),
    _function("unpause"),
    _function("transferAdmin", [_address("newAdmin")]),
    _function(
        "createSpendAccount",
        [
            _address("owner"), _string("label"), _uint("budgetPerPeriod"),
            _uint("periodDuration"), _uint("perTxLimit"), _uint("dailyLimit"),
            _uint("approvalThreshold"), _address("approver"),
            _param("uint256[]", "allowedChains"),
        ],
        [_uint("accountId")],
    ),
    _function(
        "updateSpendAccount",
        [
            _uint("accountId"), _uint("budgetPerPeriod"), _uint("perTxLimit"),
            _uint("dailyLimit"), _uint("approvalThreshold"), _address("approver"),
        ],
    ),
    _function("freezeAccount", [_uint("accountId")]),
    _function("unfreezeAccount", [_uint("accountId")]),
    _function("closeAccount", [_uint("accountId")]),
    _function("updateAllowedChains", [_uint("accountId"), _param("uint256[]", "allowedChains")]),
    _function("setAutoTopupConfig", [_uint("accountId"), _uint("minBalance"), _uint("targetBalance")]),
    _function("autoTopup", [_uint("accountId")]),
    _function("sweepAccount", [_uint("accountId")]),
    _function("resetPeriod", [_uint("accountId")]),

    # Events
    _event("SpendRequested", [
        _param("uint256", "requestId", True), _param("uint256", "accountId", True),
        _param("address", "requester", True), _param("uint256", "amount", False),
        _param("uint256", "chainId", False), _param("address", "destinationAddress", False),
    ]),
    _event("SpendApproved", [
        _param("uint256", "requestId", True), _param("uint256", "accountId", True),
        _param("address", "approver", False), _param("uint256", "amount", False),
    ]),
    _event("SpendRejected", [
        _param("uint256", "requestId", True), _param("uint256", "accountId", True),
        _param("address", "approver", False), _param("string", "reason", False),
    ]),
    _event("SpendExecuted", [
        _param("uint256", "requestId", True), _param("uint256", "accountId", True),
        _param("uint256", "amount", False), _param("string", "gatewayTxId", False),
    ]),
    _event("SpendFailed", [
        _param("uint256", "requestId", True), _param("uint256", "accountId", True),
        _param("string", "reason", False),
    ]),
    _event("SpendAccountCreated", [
        _param("uint256", "accountId", True), _param("address", "owner", True),
        _param("string", "label", False), _param("uint256", "budgetPerPeriod", False),
    ]),
    _event("SpendAccountUpdated", [_param("uint256", "accountId", True)]),
    _event("SpendAccountFrozen", [_param("uint256", "accountId", True)]),
    _event("SpendAccountUnfrozen", [_param("uint256", "accountId", True)]),
    _event("SpendAccountClosed", [_param("uint256", "accountId", True)]),
    _event("InboundFunding", [
        _param("uint256", "amount", False), _param("string", "gatewayTxId", False),
        _param("uint256", "timestamp", False),
    ]),
    _event("AdminTransferred", [
        _param("address", "previousAdmin", True), _param("address", "newAdmin", True),
    ]),
    _event("ContractPaused"),
    _event("ContractUnpaused"),
]

EVENT_NAMES = [entry["name"] for entry in TREASURY_ABI if entry["type"] == "event"]

GATEWAY_MINTER_ABI = [
    _function("gatewayMint", [_param("bytes", "attestationPayload"), _param("bytes", "signature")]),
]

ERC20_ABI = [
    _function("balanceOf", [_address("account")], [_uint("")], mutability="view"),
    _function("allowance", [_address("owner"), _address("spender")], [_uint("")], mutability="view"),
    _function("approve", [_address("spender"), _uint("amount")], [_param("bool", "")]),
]

GATEWAY_WALLET_ABI = [
    _function("deposit", [_address("token"), _uint("value")]),
    _function("availableBalance", [_address("token"), _address("depositor")], [_uint("")], mutability="view"),
]
