"""
Response models for the remote ordering API.

The API replies with a PascalCase envelope:

    {"Status": "Success" | "Failure" | ..., "StatusItems": [...], "Order": {...}}

StatusItems are usually strings but some endpoints return objects such as
{"Code": "StoreClosed", "Message": "Store closed"}; both forms are reduced
to display text by status_message().
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

SUCCESS_STATUS = "Success"


class RemoteAmounts(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    customer: float = Field(alias="Customer")


class RemoteOrder(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    order_id: Optional[str] = Field(default=None, alias="OrderID")
    amounts: Optional[RemoteAmounts] = Field(default=None, alias="Amounts")
    estimated_wait_minutes: Optional[str] = Field(default=None, alias="EstimatedWaitMinutes")


class RemoteResponse(BaseModel):
    """Status envelope returned by validate/price/place."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: Any = Field(alias="Status")
    status_items: list[Any] = Field(default_factory=list, alias="StatusItems")
    order: Optional[RemoteOrder] = Field(default=None, alias="Order")

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS_STATUS

    def status_message(self) -> str:
        messages = []
        for item in self.status_items:
            if isinstance(item, dict):
                text = item.get("Message") or item.get("Code")
                if text:
                    messages.append(str(text))
            else:
                messages.append(str(item))
        return ", ".join(messages)

    def customer_amount(self) -> float:
        """Authoritative price charged to the customer."""
        if self.order is None or self.order.amounts is None:
            raise ValueError("Priced response has no Order.Amounts.Customer")
        return self.order.amounts.customer


class RemoteStore(BaseModel):
    """One entry from the store locator."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    store_id: str = Field(alias="StoreID")
    is_online_capable: bool = Field(default=False, alias="IsOnlineCapable")
    is_delivery_store: bool = Field(default=False, alias="IsDeliveryStore")
    is_open: bool = Field(default=False, alias="IsOpen")
    service_is_open: dict[str, bool] = Field(default_factory=dict, alias="ServiceIsOpen")
    min_distance: Optional[float] = Field(default=None, alias="MinDistance")

    def accepts_online_delivery(self) -> bool:
        return (
            self.is_online_capable
            and self.is_delivery_store
            and self.is_open
            and bool(self.service_is_open.get("Delivery"))
        )


class TrackingStatus(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    order_status: Optional[str] = Field(default=None, alias="OrderStatus")
    store_status: Optional[str] = Field(default=None, alias="StoreStatus")
    estimated_wait_minutes: Optional[str] = Field(default=None, alias="EstimatedWaitMinutes")
    delivery_status: Optional[str] = Field(default=None, alias="DeliveryStatus")
    driver_name: Optional[str] = Field(default=None, alias="DriverName")
