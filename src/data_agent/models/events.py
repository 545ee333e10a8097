"""
Envelope type tags exchanged with the orchestration host.
"""


class InboundType:
    """Types the host sends to the agent."""
    DATA_REQ = "data_req"
    WAREHOUSE_REQ = "warehouse_req"
    USER_PROMPT_REQ = "user_prompt_req"
    COMPONENTS_UPDATE = "components_update"
    AUTH_LOGIN_REQ = "auth_login_req"
    AUTH_VERIFY_REQ = "auth_verify_req"


class OutboundType:
    """Types the agent sends to the host."""
    DATA_RES = "data_res"
    WAREHOUSE_RES = "warehouse_res"
    USER_PROMPT_RES = "user_prompt_res"
    COMPONENTS_UPDATE_RES = "components_update_res"
    AUTH_LOGIN_RES = "auth_login_res"
    AUTH_VERIFY_RES = "auth_verify_res"
    # Locally initiated; the reply is correlated by id, never dispatched
    COMPONENT_LIST_REQ = "component_list_req"


RESPONSE_TYPES: dict[str, str] = {
    InboundType.DATA_REQ: OutboundType.DATA_RES,
    InboundType.WAREHOUSE_REQ: OutboundType.WAREHOUSE_RES,
    InboundType.USER_PROMPT_REQ: OutboundType.USER_PROMPT_RES,
    InboundType.COMPONENTS_UPDATE: OutboundType.COMPONENTS_UPDATE_RES,
    InboundType.AUTH_LOGIN_REQ: OutboundType.AUTH_LOGIN_RES,
    InboundType.AUTH_VERIFY_REQ: OutboundType.AUTH_VERIFY_RES,
}
