from processors.auctionhouse.auctionhouse_enums import EventKind

# keccak256 of each event signature, as found in a raw log's topics[0]
EVENT_TOPICS = {
    "0xa677084ea9aea69b2640d875bae622e3cf9d7c163f52d2f9d81daa1ed072c985": EventKind.CREATE_LISTING,
    "0xc43fa59bf811b406292f853c5888b214b0e868c12884ca93b4956648caa6938a": EventKind.CREATE_LISTING_TOKEN_DETAILS,
    "0xa1d8cbc344f33f79082234478778f9af7652b2562b79a8c118d31ee97017930f": EventKind.CREATE_LISTING_FEES,
    "0x0e0d473f43a9d8727e62653cce4cd80d0c870ffb83dc4c93c9db4cb8ffe7053e": EventKind.PURCHASE,
    "0xd12be072db02c5c389af56d30a7ef86f64b7b60048f3875c6d00fc240d2d92b6": EventKind.BID,
    "0x73535bde202cd31a2fe12c1b9e7903a1b273e46e0dbc7d55dc586af898543701": EventKind.OFFER,
    "0x3d13f7b5271fd88ba34bfa097c4b522a61f0cfeb1621d43bfae01034fa421e4f": EventKind.RESCIND_OFFER,
    "0xd6df7c9a0f20ac7b678de872504d1dc938cd654638a43d5312d295e51c23e470": EventKind.ACCEPT_OFFER,
    "0xde38900f75163598713718d539a09596c3c1b9bacd1432ea1be04fa658d0cada": EventKind.MODIFY_LISTING,
    "0x19ef8c897f0ad4be12bac96be8f4a3984059ae9566f02163b0e48cf00f9aa338": EventKind.CANCEL_LISTING,
    "0x7a64269d6d03ead41925c75675255493546f656ebb9cae4158fea2633d86c541": EventKind.FINALIZE_LISTING,
}

EVENT_NAMES = {kind.value: kind for kind in EventKind}

AUCTIONHOUSE_SCHEMA_NAME = "auctionhouse"

# How many times a listing's read-modify-write is retried after losing a version race
MAX_OPTIMISTIC_RETRIES = 3
