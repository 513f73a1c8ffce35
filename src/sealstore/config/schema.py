"""Pydantic models for sealstore.yaml configuration."""

from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, SecretStr

Mode = Literal[
    "gcp-kms-gcs",
    "aws-kms-s3",
    "azure-kv",
    "alibaba-kms-oss",
    "vault",
    "k8s",
    "hsm",
    "hsm-k8s",
    "dev",
    "file",
]

MODES: tuple[str, ...] = get_args(Mode)


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GoogleCloudConfig(_Section):
    """Google Cloud Storage bucket paired with a Cloud KMS key."""

    storage_bucket: str = Field(default="", description="GCS bucket holding ciphertexts")
    storage_prefix: str = Field(default="", description="Object name prefix")
    kms_project: str = Field(default="", description="Project of the KMS key")
    kms_location: str = Field(default="", description="KMS location (e.g., global)")
    kms_key_ring: str = Field(default="", description="KMS key ring")
    kms_crypto_key: str = Field(default="", description="KMS crypto key")


class AWSConfig(_Section):
    """One S3 bucket and one KMS key per region.

    The four lists are parallel: entry ``i`` of each describes region ``i``.
    """

    s3_regions: list[str] = Field(default_factory=list, description="Region of each bucket")
    s3_buckets: list[str] = Field(default_factory=list, description="Bucket names")
    s3_prefix: str = Field(default="", description="Object key prefix shared by all buckets")
    kms_regions: list[str] = Field(default_factory=list, description="Region of each KMS key")
    kms_key_ids: list[str] = Field(default_factory=list, description="KMS key IDs, ARNs or aliases")


class AzureConfig(_Section):
    """Azure Key Vault secret storage."""

    key_vault_name: str = Field(default="", description="Key Vault name")


class AlibabaConfig(_Section):
    """Alibaba Cloud OSS bucket paired with a KMS key."""

    access_key_id: str = Field(default="", description="Access key ID")
    access_key_secret: SecretStr = Field(default=SecretStr(""), description="Access key secret")
    oss_endpoint: str = Field(default="", description="OSS endpoint URL")
    oss_bucket: str = Field(default="", description="OSS bucket")
    oss_prefix: str = Field(default="", description="Object key prefix")
    kms_region: str = Field(default="", description="KMS region ID")
    kms_key_id: str = Field(default="", description="KMS key ID")


class VaultConfig(_Section):
    """Another HashiCorp Vault used as storage."""

    address: str = Field(default="", description="Vault address (e.g., https://vault:8200)")
    unseal_keys_path: str = Field(
        default="secret/unseal-keys",
        description="KV v2 <mount>/<path> under which keys are stored",
    )
    role: str = Field(default="", description="Kubernetes auth role (empty: token auth)")
    auth_path: str = Field(default="kubernetes", description="Kubernetes auth mount path")
    token_path: str = Field(
        default="/var/run/secrets/kubernetes.io/serviceaccount/token",
        description="Service account token used for Kubernetes auth",
    )
    token: SecretStr = Field(default=SecretStr(""), description="Static Vault token")


class KubernetesConfig(_Section):
    """A Kubernetes Secret used as storage."""

    namespace: str = Field(default="default", description="Namespace of the Secret")
    secret_name: str = Field(default="", description="Secret name")
    secret_labels: dict[str, str] = Field(
        default_factory=dict,
        description="Labels applied when the Secret is created",
    )


class HSMConfig(_Section):
    """PKCS#11 hardware security module."""

    module_path: str = Field(default="", description="Path of the PKCS#11 library")
    slot_id: int | None = Field(default=None, description="Slot holding the token", ge=0)
    token_label: str = Field(default="", description="Token label")
    pin: SecretStr = Field(
        default=SecretStr(""),
        description="User PIN (only read from SEALSTORE_HSM_PIN)",
    )
    key_label: str = Field(default="sealstore", description="Label of the RSA key pair")


class FileConfig(_Section):
    """Local directory used as storage."""

    path: str = Field(default="", description="Directory holding one file per key")
    fernet_key: SecretStr = Field(
        default=SecretStr(""),
        description="Optional Fernet key encrypting files at rest (SEALSTORE_FILE_FERNET_KEY)",
    )


class StoreConfig(_Section):
    """Root configuration model: a mode plus the section it uses."""

    mode: Mode = Field(default="dev", description="Storage backend mode")
    parallel_writes: bool = Field(
        default=False,
        description="Write to multi-region members concurrently",
    )
    gcp: GoogleCloudConfig = Field(default_factory=GoogleCloudConfig)
    aws: AWSConfig = Field(default_factory=AWSConfig)
    azure: AzureConfig = Field(default_factory=AzureConfig)
    alibaba: AlibabaConfig = Field(default_factory=AlibabaConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    k8s: KubernetesConfig = Field(default_factory=KubernetesConfig)
    hsm: HSMConfig = Field(default_factory=HSMConfig)
    file: FileConfig = Field(default_factory=FileConfig)
