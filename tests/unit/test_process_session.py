from storefront import process_session
from storefront.errors import ValidationError


def test_cli_reports_created_order(monkeypatch, capsys, orders_repo, settings, provisioner, mailer, paid_session):
    from storefront.orders import service

    monkeypatch.setattr("storefront.process_session.get_settings", lambda: settings)
    monkeypatch.setattr(service, "make_provisioner", lambda s: provisioner)
    monkeypatch.setattr(service, "make_mailer", lambda: mailer)
    monkeypatch.setattr("storefront.payments.stripe_client.get_session", lambda sid, s: paid_session)

    assert process_session.main(["cs_test_abc"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Created: TRV-")
    assert "esim_status=delivered" in out

    assert process_session.main(["cs_test_abc"]) == 0
    assert capsys.readouterr().out.startswith("Already processed: TRV-")


def test_cli_returns_error_code(monkeypatch, settings):
    def refuse(session_id, **kwargs):
        raise ValidationError("Payment not confirmed (payment_status=unpaid)")

    monkeypatch.setattr("storefront.process_session.get_settings", lambda: settings)
    monkeypatch.setattr("storefront.orders.service.reconcile_session_by_id", refuse)

    assert process_session.main(["cs_test_unpaid"]) == 1


