"""
Password encryption with the application KMS key.
"""

from ecommerce.handlers.utils.observability import logger, tracer
from ecommerce.integrations.kms import KmsPasswordEncryptor
from ecommerce.integrations.parameter_store import KMS_KEY_ID, ParameterStore


class PasswordService:
    def __init__(self, parameter_store: ParameterStore, encryptor: KmsPasswordEncryptor) -> None:
        self.parameter_store = parameter_store
        self.encryptor = encryptor

    @tracer.capture_method
    async def get_password_encrypted(self, password: str) -> str:
        """Encrypt ``password`` with the key named by the ``kms-key-id`` parameter."""
        kms_key_id = await self.parameter_store.get_parameter(KMS_KEY_ID)
        logger.info('[PasswordService] Retrieved KMS Key ID for password encryption')
        return await self.encryptor.encrypt(password, kms_key_id)
