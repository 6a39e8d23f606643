"""Constants for the WI ACR Pull Operator."""

# API Group
API_GROUP = "wi-acrpull.microsoft.com"
API_VERSION = "v1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_BINDING = "WIpullbinding"
PLURAL_BINDING = "wipullbindings"

# Labels
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"
LABEL_BINDING_NAME = f"{API_GROUP}/binding"

# Annotations
# Service account currently referencing the pull secret.
ANNOTATION_SERVICE_ACCOUNT = f"{API_GROUP}/service-account"

# Finalizers
# Compared by exact match; changing it strands existing bindings.
FINALIZER = "wi-acrpull.microsoft.com"

# Field Manager
FIELD_MANAGER = "wi-acrpull-operator"
CONTROLLER_NAME = "wi-acrpull-operator"

# Pull secrets
PULL_SECRET_SUFFIX = "-msi-acrpull-secret"
PULL_SECRET_TYPE = "kubernetes.io/dockerconfigjson"
DOCKER_CONFIG_KEY = ".dockerconfigjson"
DEFAULT_SERVICE_ACCOUNT_NAME = "default"

# Identity
DEFAULT_IDENTITY_TOKEN_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/token"
DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com/"
DEFAULT_TOKEN_SCOPE = "https://containerregistry.azure.net/.default"

# Token refresh
DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS = 30 * 60

# Condition Types
COND_READY = "Ready"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_TOKEN_REFRESHED = "TokenRefreshed"
EVENT_REASON_TOKEN_EXCHANGE_FAILED = "TokenExchangeFailed"
EVENT_REASON_PULL_SECRET_CREATED = "PullSecretCreated"
EVENT_REASON_PULL_SECRET_UPDATED = "PullSecretUpdated"
EVENT_REASON_SERVICE_ACCOUNT_BOUND = "ServiceAccountBound"
EVENT_REASON_SERVICE_ACCOUNT_UNBOUND = "ServiceAccountUnbound"
