import json

import httpx
import pytest

from erp.errors import ConfigurationError, DecodeError, NotFoundError, RemoteError, TransportError, ValidationError
from erp.gateway import ERPNextGateway, build_list_params, list_many

from fake_erp import BASE_URL


class Settings:
    def __init__(self, url=None, key=None, secret=None):
        self.url, self.key, self.secret = url, key, secret

    def erp_settings(self):
        return {"ERPNEXT_URL": self.url, "ERPNEXT_API_KEY": self.key, "ERPNEXT_API_SECRET": self.secret}


async def test_filters_are_sent_as_json_triples(gateway, fake_erp):
    fake_erp.seed("Task", {"subject": "A", "customer": "ACME"})
    fake_erp.seed("Task", {"subject": "B", "customer": "OTHER"})

    result = await gateway.list("Task", filters=[["customer", "=", "ACME"]], fields=["name", "subject"])

    assert result.ok
    assert [r["subject"] for r in result.data] == ["A"]
    params = fake_erp.calls("GET", "Task")[0]["params"]
    assert json.loads(params["filters"]) == [["customer", "=", "ACME"]]
    assert json.loads(params["fields"]) == ["name", "subject"]


async def test_token_pair_is_sent_on_every_call(gateway, fake_erp):
    await gateway.list("Customer")
    assert fake_erp.requests[0]["headers"]["authorization"] == "token key:secret"


def test_list_params_reject_malformed_filters():
    with pytest.raises(ValidationError):
        build_list_params(filters=[["customer", "="]])
    params = build_list_params(filters=[["Task", "customer", "=", "x"]], order_by="creation desc", limit=5)
    assert params["limit_page_length"] == "5"
    assert params["order_by"] == "creation desc"


async def test_missing_document_is_a_typed_not_found(gateway):
    result = await gateway.get("Customer", "Nope")
    assert not result.ok
    assert result.not_found
    assert isinstance(result.error, NotFoundError)
    assert result.status_code == 404
    assert "not found" in result.error.message


async def test_remote_error_keeps_status_and_server_message(gateway, fake_erp):
    fake_erp.fail("POST", "Sales Invoice", status=417, message="Due Date cannot be before Posting Date")
    result = await gateway.create("Sales Invoice", {"customer": "ACME"})
    assert isinstance(result.error, RemoteError)
    assert result.status_code == 417
    assert result.error.message == "Due Date cannot be before Posting Date"
    assert result.to_dict() == {"ok": False, "error": "Due Date cannot be before Posting Date", "statusCode": 417}


async def test_unreachable_remote_is_transport_error(gateway, fake_erp):
    fake_erp.down = True
    result = await gateway.list("Task")
    assert isinstance(result.error, TransportError)
    with pytest.raises(TransportError):
        result.unwrap()


async def test_unexpected_body_is_decode_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>login</html>"))
    gw = ERPNextGateway(BASE_URL, "k", "s", transport=transport)
    try:
        result = await gw.get("Customer", "ACME")
    finally:
        await gw.aclose()
    assert isinstance(result.error, DecodeError)


async def test_names_are_url_encoded(gateway, fake_erp):
    fake_erp.seed("Customer", {"name": "Colegio San José", "customer_name": "Colegio San José"})
    result = await gateway.get("Customer", "Colegio San José")
    assert result.ok
    assert result.data["customer_name"] == "Colegio San José"


async def test_update_and_delete(gateway, fake_erp):
    doc = fake_erp.seed("Task", {"subject": "Old"})
    assert (await gateway.update("Task", doc["name"], {"subject": "New"})).data["subject"] == "New"
    assert (await gateway.delete("Task", doc["name"])).ok
    assert fake_erp.doc("Task", doc["name"]) is None


async def test_call_method_returns_message(gateway):
    result = await gateway.call_method("frappe.auth.get_logged_user")
    assert result.data == "api@lumen.test"


async def test_list_many_keeps_request_order(gateway, fake_erp):
    fake_erp.seed("Sales Invoice", {"customer": "ACME", "grand_total": 10})
    fake_erp.seed("Payment Entry", {"party": "ACME", "paid_amount": 5})
    invoices, payments = await list_many(gateway, [{"doctype": "Sales Invoice"}, {"doctype": "Payment Entry"}])
    assert invoices.data[0]["grand_total"] == 10
    assert payments.data[0]["paid_amount"] == 5


def test_from_config():
    assert ERPNextGateway.from_config(Settings()) is None
    with pytest.raises(ConfigurationError) as exc:
        ERPNextGateway.from_config(Settings(url="http://erp"))
    assert "ERPNEXT_API_KEY" in exc.value.message
    assert "ERPNEXT_API_SECRET" in exc.value.message
