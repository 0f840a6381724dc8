import stripe

from unishift.payments import stripe_client


def _capture(monkeypatch, target, attr, result):
    calls = []

    def fake(*args, **kwargs):
        calls.append((args, kwargs))
        return result

    monkeypatch.setattr(target, attr, fake)
    return calls


def test_require_stripe_sets_api_key(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    monkeypatch.setattr(stripe_client, "STRIPE_SECRET_KEY", "sk_test_123")
    assert stripe_client.require_stripe() is stripe
    assert stripe.api_key == "sk_test_123"


def test_create_session_params(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    calls = _capture(monkeypatch, stripe.checkout.Session, "create", {"id": "cs_1", "url": "https://x"})

    out = stripe_client.create_session(
        line_items=[{"quantity": 1}],
        mode="payment",
        success_url="https://front/success",
        cancel_url="https://front/cancel",
        metadata={"parcelId": "p1"},
        customer_email="a@example.com",
    )
    assert out == {"id": "cs_1", "url": "https://x"}
    _, params = calls[0]
    assert params["payment_method_types"] == ["card"]
    assert params["customer_email"] == "a@example.com"
    assert params["metadata"] == {"parcelId": "p1"}
    assert params["mode"] == "payment"


def test_create_session_without_email_omits_field(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    calls = _capture(monkeypatch, stripe.checkout.Session, "create", {"id": "cs_2"})

    stripe_client.create_session(
        line_items=[], mode="payment", success_url="s", cancel_url="c", metadata={}, customer_email=None,
    )
    # Stripe refuse customer_email vide: le champ ne doit pas être envoyé
    assert "customer_email" not in calls[0][1]


def test_get_session_returns_dict(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    obj = stripe.StripeObject.construct_from(
        {"id": "cs_3", "payment_status": "paid", "metadata": {"parcelId": "p1"}}, "sk_test",
    )
    calls = _capture(monkeypatch, stripe.checkout.Session, "retrieve", obj)

    session = stripe_client.get_session("cs_3")
    assert calls[0][0] == ("cs_3",)
    assert type(session) is dict
    assert session["payment_status"] == "paid"
    assert session["metadata"]["parcelId"] == "p1"


def test_retrieve_payment_intent_expands_latest_charge(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    calls = _capture(monkeypatch, stripe.PaymentIntent, "retrieve", {"id": "pi_1"})

    assert stripe_client.retrieve_payment_intent("pi_1") == {"id": "pi_1"}
    assert calls[0][1]["expand"] == ["latest_charge"]

    stripe_client.retrieve_payment_intent("pi_1", expand=["payment_method"])
    assert calls[1][1]["expand"] == ["payment_method"]


def test_retrieve_payment_method(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    calls = _capture(monkeypatch, stripe.PaymentMethod, "retrieve", {"id": "pm_1", "card": {"last4": "4242"}})

    assert stripe_client.retrieve_payment_method("pm_1")["card"]["last4"] == "4242"
    assert calls[0][0] == ("pm_1",)


def test_to_dict_handles_none_and_plain_dict():
    assert stripe_client.to_dict(None) == {}
    plain = {"id": "x"}
    assert stripe_client.to_dict(plain) is plain
