import unittest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest import mock

import helpers

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from delivery_api import crud
from delivery_api.accounts import AccountService
from delivery_api.auth import TokenMinter, generate_single_use_token
from delivery_api.db import Base, build_engine
from delivery_api.errors import DuplicateEmail, InvalidOrUnknownToken, StoreUnavailable
from delivery_api.hashing import CredentialHasher
from delivery_api.store import SqlAccountStore


class SqlStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = build_engine("sqlite://", poolclass=StaticPool)
        Base.metadata.create_all(bind=self.engine)
        self.db = sessionmaker(bind=self.engine, autoflush=False)()
        self.store = SqlAccountStore(self.db)
        self.now = datetime(2026, 1, 10, 12, 0, 0)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def insert(self, email: str = "ann@x.com", token: str | None = None):
        return self.store.insert(
            name="Ann",
            email=email,
            password_hash="hash",
            phone=None,
            verification_token=token or generate_single_use_token(),
            verification_expires_at=self.now + timedelta(hours=24),
            created_at=self.now,
        )


class SqlAccountStoreTests(SqlStoreTestCase):
    def test_insert_and_lookups(self) -> None:
        account = self.insert(token="a" * 64)
        self.assertFalse(account.is_email_verified)
        self.assertEqual(self.store.get_by_email("ann@x.com").id, account.id)
        self.assertEqual(self.store.get_by_verification_token("a" * 64).id, account.id)
        self.assertIsNone(self.store.get_by_verification_token("a" * 63))
        self.assertIsNone(self.store.get_by_reset_token("a" * 64))

    def test_duplicate_insert(self) -> None:
        self.insert()
        with self.assertRaises(DuplicateEmail):
            self.insert()
        self.assertIsNotNone(self.store.get_by_email("ann@x.com"))

    def test_consume_verification_is_single_use(self) -> None:
        account = self.insert(token="b" * 64)
        self.assertFalse(self.store.consume_verification_token(account.id, "c" * 64))
        self.assertTrue(self.store.consume_verification_token(account.id, "b" * 64))
        self.assertFalse(self.store.consume_verification_token(account.id, "b" * 64))
        account = self.store.get_by_id(account.id)
        self.assertTrue(account.is_email_verified)
        self.assertIsNone(account.email_verification_token)
        self.assertIsNone(account.email_verification_expires_at)
        self.assertIsNone(self.store.get_by_verification_token("b" * 64))

    def test_consume_reset_token(self) -> None:
        account = self.insert()
        self.store.set_reset_token(account.id, "d" * 64, self.now + timedelta(hours=1))
        self.assertEqual(self.store.get_by_reset_token("d" * 64).id, account.id)
        self.assertFalse(self.store.consume_reset_token(account.id, "e" * 64, "new-hash"))
        self.assertEqual(self.store.get_by_id(account.id).password_hash, "hash")
        self.assertTrue(self.store.consume_reset_token(account.id, "d" * 64, "new-hash"))
        account = self.store.get_by_id(account.id)
        self.assertEqual(account.password_hash, "new-hash")
        self.assertIsNone(account.password_reset_token)
        self.assertIsNone(account.password_reset_expires_at)

    def test_list_orders_newest_first(self) -> None:
        account = self.insert()
        crud.create_order(
            self.db,
            user_id=account.id,
            restaurant_name="Old",
            total_amount=Decimal("10.00"),
            delivery_address="Street 1",
            order_date=self.now - timedelta(days=2),
            items=[{"dish_name": "Soup", "dish_price": Decimal("10.00")}],
        )
        crud.create_order(
            self.db,
            user_id=account.id,
            restaurant_name="New",
            total_amount=Decimal("20.00"),
            delivery_address="Street 1",
            order_date=self.now,
        )
        orders = self.store.list_orders(account.id)
        self.assertEqual([order.restaurant_name for order in orders], ["New", "Old"])
        self.assertEqual(orders[1].items[0].quantity, 1)
        self.assertEqual(self.store.list_orders(account.id + 1), [])

    def test_ping(self) -> None:
        self.assertTrue(self.store.ping())


class StoreUnavailableTests(unittest.TestCase):
    def test_connection_errors_become_store_unavailable(self) -> None:
        db = mock.Mock()
        db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
        store = SqlAccountStore(db)
        with self.assertLogs("db", level="ERROR"):
            with self.assertRaises(StoreUnavailable):
                store.get_by_email("ann@x.com")
        db.rollback.assert_called_once()
        self.assertFalse(store.ping())


class SqlBackedServiceTests(SqlStoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.mailer = helpers.RecordingMailer()
        self.service = AccountService(
            self.store,
            CredentialHasher(rounds=4),
            TokenMinter(helpers.TEST_SECRET),
            self.mailer,
            helpers.make_settings(),
        )

    def test_register_verify_scenario(self) -> None:
        account = self.service.register("Ann", "ann@x.com", "secret1").account
        token = account.email_verification_token
        expected = datetime.utcnow() + timedelta(hours=24)
        self.assertLess(abs(account.email_verification_expires_at - expected), timedelta(minutes=1))
        self.assertTrue(self.service.verify_email(token).is_email_verified)
        with self.assertRaises(InvalidOrUnknownToken):
            self.service.verify_email(token)

    def test_registration_race_hits_unique_constraint(self) -> None:
        self.service.register("Ann", "ann@x.com", "secret1")
        with mock.patch.object(self.store, "get_by_email", return_value=None):
            with self.assertRaises(DuplicateEmail):
                self.service.register("Ann", "ann@x.com", "secret1")
        self.assertEqual(len(self.mailer.sent), 1)

    def test_reset_scenario(self) -> None:
        self.service.register("Ann", "ann@x.com", "secret1")
        self.service.request_password_reset("ann@x.com")
        token = self.store.get_by_email("ann@x.com").password_reset_token
        self.service.reset_password(token, "newpass1")
        self.assertEqual(self.service.login("ann@x.com", "newpass1").account.email, "ann@x.com")
        self.assertIsNone(self.store.get_by_email("ann@x.com").password_reset_token)


if __name__ == "__main__":
    unittest.main()
