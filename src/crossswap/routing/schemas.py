"""Upstream response schemas.

Every provider payload is validated against one of these models before it
is mapped into a RouteProposal. Required fields have no defaults, so a body
lacking them is a provider error, never a success with made-up data.
Optional upstream fields are resolved to explicit defaults here so the
scoring code never sees None.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter


class UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _integer_string(value) -> str:
    if isinstance(value, bool):
        raise ValueError("must be an integer amount")
    text = str(value).strip()
    if not text.isdigit():
        raise ValueError("must be a non-negative integer string")
    return text


# Base-unit amounts arrive as decimal integer strings (sometimes as numbers)
IntegerString = Annotated[str, BeforeValidator(_integer_string)]


# ======================
# Fusion (RFQ)
# ======================


class FusionPreset(UpstreamModel):
    """Dutch auction preset returned by the Fusion quoter."""

    auction_duration: int = Field(default=180, alias="auctionDuration", ge=0)
    start_amount: Optional[str] = Field(default=None, alias="startAmount")
    cost_in_dst_token: str = Field(default="0", alias="costInDstToken")


class FusionQuotePayload(UpstreamModel):
    """Fusion quoter `quote/receive` response."""

    kind: Literal["fusion"] = "fusion"
    dst_amount: IntegerString = Field(
        validation_alias=AliasChoices("dstTokenAmount", "toTokenAmount", "dstAmount")
    )
    src_amount: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("srcTokenAmount", "fromTokenAmount")
    )
    quote_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("quoteId", "quote_id"))
    recommended_preset: str = Field(
        default="medium", validation_alias=AliasChoices("recommended_preset", "recommendedPreset")
    )
    presets: dict[str, FusionPreset] = Field(default_factory=dict)
    price_impact_percent: float = Field(
        default=0.0, validation_alias=AliasChoices("priceImpactPercent", "priceImpact"), ge=0
    )
    estimated_gas: int = Field(default=0, validation_alias=AliasChoices("estimatedGas", "gas"), ge=0)

    @property
    def auction_duration(self) -> int:
        preset = self.presets.get(self.recommended_preset)
        return preset.auction_duration if preset else 180

    @property
    def resolver_cost(self) -> int:
        preset = self.presets.get(self.recommended_preset)
        return int(preset.cost_in_dst_token) if preset and preset.cost_in_dst_token.isdigit() else 0


class FusionOrderPayload(UpstreamModel):
    """Relayer response to an order submission."""

    kind: Literal["fusion_order"] = "fusion_order"
    order_id: str = Field(validation_alias=AliasChoices("orderHash", "orderId"))
    status: str = Field(default="pending", validation_alias=AliasChoices("status", "orderStatus"))
    quote_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("quoteId", "quote_id"))


class FusionOrderStatusPayload(UpstreamModel):
    """Orders API status response."""

    kind: Literal["fusion_order_status"] = "fusion_order_status"
    order_id: str = Field(validation_alias=AliasChoices("orderHash", "orderId"))
    status: str = Field(validation_alias=AliasChoices("status", "orderStatus"))
    tx_hash: Optional[str] = Field(default=None, validation_alias=AliasChoices("txHash", "tx_hash"))
    fills: list[dict] = Field(default_factory=list)
    error: Optional[str] = None


# ======================
# Aggregation (swap API)
# ======================


class ProtocolPart(UpstreamModel):
    """One venue share within a hop."""

    name: str
    part: float = Field(default=100.0, ge=0)
    from_token_address: str = Field(default="", alias="fromTokenAddress")
    to_token_address: str = Field(default="", alias="toTokenAddress")


class UpstreamTokenInfo(UpstreamModel):
    address: str = ""
    symbol: str = ""
    decimals: int = Field(default=18, ge=0)


class AggregationQuotePayload(UpstreamModel):
    """Swap API `quote` response with protocols and gas included.

    `protocols` is a list of split routes, each a list of hops, each a list
    of venue shares.
    """

    kind: Literal["aggregation"] = "aggregation"
    dst_amount: IntegerString = Field(validation_alias=AliasChoices("dstAmount", "toAmount", "toTokenAmount"))
    gas: int = Field(default=0, validation_alias=AliasChoices("gas", "estimatedGas"), ge=0)
    price_impact_percent: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("priceImpactPercent", "priceImpact"), ge=0
    )
    protocols: list[list[list[ProtocolPart]]] = Field(default_factory=list)
    src_token: Optional[UpstreamTokenInfo] = Field(default=None, alias="srcToken")
    dst_token: Optional[UpstreamTokenInfo] = Field(default=None, alias="dstToken")


# ======================
# Gas price API
# ======================


class GasTier(UpstreamModel):
    max_fee_per_gas: str = Field(alias="maxFeePerGas")
    max_priority_fee_per_gas: str = Field(default="0", alias="maxPriorityFeePerGas")


class GasPricePayload(UpstreamModel):
    """EIP-1559 gas price response."""

    kind: Literal["gas"] = "gas"
    base_fee: str = Field(default="0", alias="baseFee")
    low: GasTier
    medium: GasTier
    high: GasTier
    instant: Optional[GasTier] = None


ProviderPayload = Annotated[
    Union[
        FusionQuotePayload,
        FusionOrderPayload,
        FusionOrderStatusPayload,
        AggregationQuotePayload,
        GasPricePayload,
    ],
    Field(discriminator="kind"),
]

_payload_adapter = TypeAdapter(ProviderPayload)


def parse_payload(kind: str, data) -> ProviderPayload:
    """Validate a raw upstream body as the payload of a known provider kind.

    Raises:
        pydantic.ValidationError: if the body does not match the schema
    """
    if not isinstance(data, dict):
        data = {"__invalid__": data}
    return _payload_adapter.validate_python({**data, "kind": kind})
