"""
Rejoue la réconciliation d'une session Stripe (commande manquante après un webhook en échec).

Usage:
    python -m storefront.process_session cs_live_...
    TEST_MODE=true python -m storefront.process_session cs_test_...
"""
import argparse
import logging
import sys

from storefront.config import get_settings
from storefront.errors import StorefrontError
from storefront.orders import service as orders_service

logger = logging.getLogger("storefront.process_session")

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Process a paid Stripe Checkout session into an eSIM order.")
    parser.add_argument("session_id", help="Stripe Checkout session id (cs_...)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    settings = get_settings()
    logger.info("process_session mode=%s session_id=%s", settings.mode, args.session_id)
    try:
        result = orders_service.reconcile_session_by_id(
            args.session_id,
            settings=settings,
            provisioner=orders_service.make_provisioner(settings),
            mailer=orders_service.make_mailer(),
            reporter=orders_service.make_reporter(),
        )
    except StorefrontError as e:
        logger.error("process_session failed session_id=%s error=%s", args.session_id, e.message)
        return 1

    order = result.order
    print(f"{'Created' if result.created else 'Already processed'}: {order.order_number} "
          f"esim_status={order.esim_status} email_sent={order.confirmation_email_sent}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
