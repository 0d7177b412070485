import unittest

from identity_oracle.config import load_config, validate_config
from identity_oracle.errors import ConfigError

BASE_ENV = {
    "IDENTITY_ENCRYPTION_KEY": "commonwealth-identity-service",
    "VERIFIER_INDEX": "3",
    "VERIFIER_SECRET": "bottom drive obey lake",
}


class TestLoadConfig(unittest.TestCase):

    def test_defaults(self):
        config = load_config(BASE_ENV)
        self.assertEqual(config.verifier_index, 3)
        self.assertEqual(config.ledger_endpoint, "memory://local")
        self.assertEqual(config.attestation_kind, "github")
        self.assertEqual(config.attestation_description, "Edgeware Identity Attestation")
        self.assertEqual(config.fetch_timeout, 10.0)
        self.assertTrue(config.log_json)

    def test_derivation_path_appended(self):
        config = load_config(dict(BASE_ENV, DERIVATION_PATH="//Verifier"))
        self.assertEqual(config.verifier_secret, "bottom drive obey lake//Verifier")

    def test_overrides(self):
        config = load_config(dict(
            BASE_ENV,
            LEDGER_ENDPOINT="memory://staging",
            FETCH_TIMEOUT_SECONDS="2.5",
            FETCH_WORKERS="16",
            ORACLE_LOG_JSON="false",
        ))
        self.assertEqual(config.ledger_endpoint, "memory://staging")
        self.assertEqual(config.fetch_timeout, 2.5)
        self.assertEqual(config.fetch_workers, 16)
        self.assertFalse(config.log_json)

    def test_missing_key_material(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config({})
        self.assertEqual(len(ctx.exception.problems), 3)

    def test_invalid_numbers(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(dict(BASE_ENV, VERIFIER_INDEX="abc", FETCH_WORKERS="0"))
        problems = " ".join(ctx.exception.problems)
        self.assertIn("VERIFIER_INDEX", problems)
        self.assertIn("FETCH_WORKERS", problems)

    def test_repr_masks_secrets(self):
        text = repr(load_config(BASE_ENV))
        self.assertNotIn("commonwealth-identity-service", text)
        self.assertNotIn("bottom drive", text)

    def test_validate_config(self):
        self.assertEqual(validate_config({"VERIFIER_INDEX": "1"}), {
            "IDENTITY_ENCRYPTION_KEY": False,
            "VERIFIER_INDEX": True,
            "VERIFIER_SECRET": False,
        })


if __name__ == "__main__":
    unittest.main()
