"""
Configuration for the compliance proof toolkit.

Field parameters, Merkle tree shape, circuit artifact layout and limits.
All values are validated on import.
"""

# ============================================================================
# FIELD PARAMETERS (BN254 / alt_bn128)
# ============================================================================

CURVE_NAME = "bn128"
PROOF_PROTOCOL = "groth16"

# Scalar field of the curve: every witness value, hash output and public
# signal is an element of this field.
SNARK_SCALAR_FIELD = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)

# Base field: proof point coordinates live here.
SNARK_BASE_FIELD = (
    21888242871839275222246405745257275088696311157297823662689037894645226208583
)

FIELD_ELEMENT_BYTES = 32

# ============================================================================
# HASHING
# ============================================================================

# circomlib Poseidon accepts 1..16 inputs; the circuits here use at most 5.
POSEIDON_MAX_INPUTS = 16

HASH_BACKENDS = ("poseidon", "keccak")
DEFAULT_HASH_BACKEND = "poseidon"

# Node.js bridge for circomlibjs Poseidon
NODE_BINARY = "node"
BRIDGE_TIMEOUT_SEC = 300
BRIDGE_BATCH_SIZE = 65536

# ============================================================================
# MERKLE TREE
# ============================================================================

DEFAULT_TREE_DEPTH = 20
MAX_TREE_DEPTH = 32
ZERO_ELEMENT = 0

# Identity sets kept by a SnapshotRegistry before the least recently used is
# evicted.
MAX_CACHED_SNAPSHOTS = 64

# Non-membership proofs are anchored at this leaf position.
BLACKLIST_ANCHOR_INDEX = 0

# ============================================================================
# COMPLIANCE SCORING
# ============================================================================

# The aggregation circuit compares sum(score * weight) against
# minimumComplianceLevel * COMPLIANCE_SCALE.
COMPLIANCE_SCALE = 100
MAX_SUB_SCORE = 100

# Jurisdiction codes are bit positions in the public allowed-set mask.
MAX_JURISDICTION_CODE = 252

# ============================================================================
# CIRCUIT ARTIFACTS
# ============================================================================

BUILD_DIR_ENV_VAR = "ZK_COMPLIANCE_BUILD_DIR"
DEFAULT_BUILD_DIR = "build/circuits"

SNARKJS_COMMAND = ("snarkjs",)
DEFAULT_PROVER_TIMEOUT_SEC = 120

# ============================================================================
# PROOF ENCODING
# ============================================================================

PROOF_BUNDLE_VERSION = 1
PROOF_SIZE_BYTES = 8 * FIELD_ELEMENT_BYTES
MAX_VERIFY_BATCH_SIZE = 50
MAX_VK_BYTES = 1024 * 1024

# ============================================================================
# VERIFIER MODES
# ============================================================================

VERIFIER_MODES = ("mock", "real")
DEFAULT_VERIFIER_MODE = "real"

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert CURVE_NAME == "bn128", "Only bn128 circuits are supported"
    assert PROOF_PROTOCOL == "groth16", "Only groth16 proofs are supported"
    assert SNARK_SCALAR_FIELD < SNARK_BASE_FIELD, "Field ordering mismatch"
    assert SNARK_SCALAR_FIELD.bit_length() == 254, "Unexpected scalar field size"
    assert 0 < DEFAULT_TREE_DEPTH <= MAX_TREE_DEPTH, "Invalid tree depth"
    assert DEFAULT_HASH_BACKEND in HASH_BACKENDS, "Invalid default hash backend"
    assert DEFAULT_VERIFIER_MODE in VERIFIER_MODES, "Invalid default verifier mode"
    assert (1 << MAX_JURISDICTION_CODE) < SNARK_SCALAR_FIELD, (
        "Jurisdiction mask must fit in the scalar field"
    )
    assert BLACKLIST_ANCHOR_INDEX == 0, "Anchor must be the first leaf"
    assert COMPLIANCE_SCALE > 0, "Compliance scale must be positive"
    return True


# Auto-validate on import
validate_config()
