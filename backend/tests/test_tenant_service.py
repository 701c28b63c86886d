import unittest
from datetime import timedelta

from stockmanager import create_app
from stockmanager.errors import NotFoundError, ValidationError
from stockmanager.extensions import db
from stockmanager.models import Subscription
from stockmanager.services import auth_service, tenant_service
from stockmanager.time_utils import utcnow


class TenantServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": True,
            "BCRYPT_ROUNDS": 4,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        self.seller = tenant_service.create_seller(business_name="Main Street Store", tier="BASIC")

    def test_create_seller_creates_active_subscription(self):
        sub = Subscription.query.filter_by(seller_id=self.seller.id).one()
        self.assertEqual(sub.tier, "BASIC")
        self.assertEqual(sub.status, "ACTIVE")

    def test_create_seller_validation(self):
        with self.assertRaises(ValidationError):
            tenant_service.create_seller(business_name="   ")
        with self.assertRaises(ValidationError):
            tenant_service.create_seller(business_name="Shop", tier="PLATINUM")

    def test_active_tier_fallbacks(self):
        self.assertEqual(tenant_service.get_active_tier(self.seller.id), "BASIC")

        sub = Subscription.query.filter_by(seller_id=self.seller.id).one()
        sub.status = "CANCELLED"
        db.session.commit()
        self.assertEqual(tenant_service.get_active_tier(self.seller.id), "FREE")

        sub.status = "ACTIVE"
        sub.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()
        self.assertEqual(tenant_service.get_active_tier(self.seller.id), "FREE")

        sub.expires_at = utcnow() + timedelta(days=30)
        db.session.commit()
        self.assertEqual(tenant_service.get_active_tier(self.seller.id), "BASIC")

    def test_product_limit_follows_tier(self):
        self.assertEqual(tenant_service.get_product_limit(self.seller.id), 200)
        pro = tenant_service.create_seller(business_name="Big Store", tier="PRO")
        self.assertIsNone(tenant_service.get_product_limit(pro.id))

    def test_update_settings(self):
        seller = tenant_service.update_seller_settings(self.seller.id, {
            "phone": "555-0199",
            "default_pricing_mode": "MARKUP",
            "default_markup_percentage": "12.5",
        })
        self.assertEqual(seller.phone, "555-0199")
        self.assertEqual(seller.default_pricing_mode, "MARKUP")
        self.assertEqual(float(seller.default_markup_percentage), 12.5)

    def test_update_settings_rejects_bad_values(self):
        with self.assertRaises(ValidationError):
            tenant_service.update_seller_settings(self.seller.id, {"default_pricing_mode": "AUCTION"})
        db.session.rollback()
        with self.assertRaises(ValidationError):
            tenant_service.update_seller_settings(self.seller.id, {"default_markup_percentage": -1})

    def test_deactivated_seller_not_found(self):
        self.seller.is_active = False
        db.session.commit()
        with self.assertRaises(NotFoundError):
            tenant_service.get_seller(self.seller.id)


class AuthServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "TESTING": True,
            "BCRYPT_ROUNDS": 4,
            "SESSION_TTL_HOURS": 1,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        self.seller = tenant_service.create_seller(business_name="Auth Shop")
        self.user = auth_service.create_user(
            name="Owner", email="Owner@Auth.Shop", password="Password123!",
            role="OWNER", seller_id=self.seller.id,
        )

    def test_email_normalized_and_unique(self):
        self.assertEqual(self.user.email, "owner@auth.shop")
        with self.assertRaises(ValidationError):
            auth_service.create_user(
                name="Dup", email="OWNER@auth.shop", password="Password123!",
                role="OPERATIONS", seller_id=self.seller.id,
            )

    def test_password_is_hashed(self):
        self.assertNotEqual(self.user.password_hash, "Password123!")
        self.assertTrue(auth_service.verify_password("Password123!", self.user.password_hash))
        self.assertFalse(auth_service.verify_password("nope", self.user.password_hash))

    def test_short_password_rejected(self):
        with self.assertRaises(ValidationError):
            auth_service.create_user(
                name="Short", email="short@auth.shop", password="abc",
                role="OPERATIONS", seller_id=self.seller.id,
            )

    def test_shop_roles_need_a_seller(self):
        with self.assertRaises(ValidationError):
            auth_service.create_user(name="Floating", email="f@auth.shop", password="Password123!", role="OWNER")

    def test_session_expiry(self):
        session, token = auth_service.create_session(self.user)
        self.assertIsNotNone(auth_service.validate_session(token))

        session.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()
        self.assertIsNone(auth_service.validate_session(token))

    def test_token_stored_hashed(self):
        session, token = auth_service.create_session(self.user)
        self.assertNotEqual(session.token_hash, token)
        self.assertEqual(session.token_hash, auth_service.hash_token(token))

    def test_inactive_user_cannot_authenticate(self):
        self.assertIsNotNone(auth_service.authenticate("owner@auth.shop", "Password123!"))
        self.user.is_active = False
        db.session.commit()
        self.assertIsNone(auth_service.authenticate("owner@auth.shop", "Password123!"))


if __name__ == "__main__":
    unittest.main()
