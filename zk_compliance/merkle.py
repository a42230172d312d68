"""
Fixed-depth Merkle trees over identity sets.

Leaves are H(identity). The leaf sequence is padded with the canonical zero
element to 2^depth and pairs are hashed bottom-up with fixed left||right
ordering. Padding subtrees are never materialized: a padding node at level k
is Z[k], where Z[0] = 0 and Z[k+1] = H(Z[k], Z[k]), so a tree over four
identities at depth 20 costs a few dozen hashes instead of a million.

Every build produces an immutable `MerkleSnapshot` keyed by its root.
Consumers reference a specific root, never a live mutable set.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import (
    DEFAULT_TREE_DEPTH,
    MAX_CACHED_SNAPSHOTS,
    MAX_TREE_DEPTH,
    ZERO_ELEMENT,
)
from .exceptions import LeafNotFoundError, MerkleTreeError, SnapshotNotFound
from .hashing import HashEngine, check_field_element

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InclusionProof:
    """
    Authentication path for one leaf.

    Attributes:
        leaf: Leaf hash H(identity)
        leaf_index: Position of the leaf in the real leaf sequence
        path_elements: Sibling hash at each level, bottom-up
        path_indices: 0 if the node at that level is a left child, 1 if right
        root: Root the path resolves to
    """

    leaf: int
    leaf_index: int
    path_elements: Tuple[int, ...]
    path_indices: Tuple[int, ...]
    root: int

    @property
    def depth(self) -> int:
        return len(self.path_elements)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leaf": str(self.leaf),
            "leafIndex": self.leaf_index,
            "pathElements": [str(e) for e in self.path_elements],
            "pathIndices": list(self.path_indices),
            "root": str(self.root),
        }


def verify_path(
    engine: HashEngine,
    leaf: int,
    path_elements: Sequence[int],
    path_indices: Sequence[int],
    root: int,
) -> bool:
    """
    Recompute the root from a leaf and its authentication path.

    Returns:
        True if the path resolves to `root`, False otherwise (including
        mismatched path lengths or direction bits other than 0/1).
    """
    if len(path_elements) != len(path_indices):
        return False

    current = leaf
    for sibling, direction in zip(path_elements, path_indices):
        if direction == 0:
            current = engine.hash_pair(current, sibling)
        elif direction == 1:
            current = engine.hash_pair(sibling, current)
        else:
            return False

    return current == root


@dataclass(frozen=True, eq=False)
class MerkleSnapshot:
    """
    Immutable result of one tree build.

    `levels[k]` holds only the non-padding prefix of level k; nodes past the
    end of a level equal `zero_hashes[k]`.
    """

    root: int
    depth: int
    identities: Tuple[int, ...]
    leaves: Tuple[int, ...]
    levels: Tuple[Tuple[int, ...], ...] = field(repr=False)
    zero_hashes: Tuple[int, ...] = field(repr=False)
    version: int = 0
    _leaf_index: Dict[int, int] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        index: Dict[int, int] = {}
        for i, leaf in enumerate(self.leaves):
            index.setdefault(leaf, i)
        object.__setattr__(self, "_leaf_index", index)

    @property
    def size(self) -> int:
        return len(self.leaves)

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    def node(self, level: int, index: int) -> int:
        if not 0 <= level <= self.depth:
            raise MerkleTreeError(f"level {level} outside tree of depth {self.depth}")
        row = self.levels[level]
        if index < len(row):
            return row[index]
        return self.zero_hashes[level]

    def contains_leaf(self, leaf: int) -> bool:
        return leaf in self._leaf_index

    def index_of_leaf(self, leaf: int) -> int:
        try:
            return self._leaf_index[leaf]
        except KeyError:
            raise LeafNotFoundError("leaf not found in tree") from None

    def proof(self, leaf_index: int) -> InclusionProof:
        """
        Build the inclusion proof for a real (non-padding) leaf.

        Raises:
            MerkleTreeError: If `leaf_index` is outside the real leaf range
        """
        if isinstance(leaf_index, bool) or not isinstance(leaf_index, int):
            raise MerkleTreeError("leaf_index must be int")
        if not 0 <= leaf_index < self.size:
            raise MerkleTreeError(
                f"leaf_index {leaf_index} outside real leaf range [0, {self.size})"
            )

        path_elements: List[int] = []
        path_indices: List[int] = []
        index = leaf_index
        for level in range(self.depth):
            is_left = index % 2 == 0
            sibling_index = index + 1 if is_left else index - 1
            path_elements.append(self.node(level, sibling_index))
            path_indices.append(0 if is_left else 1)
            index //= 2

        return InclusionProof(
            leaf=self.leaves[leaf_index],
            leaf_index=leaf_index,
            path_elements=tuple(path_elements),
            path_indices=tuple(path_indices),
            root=self.root,
        )

    def proof_for_leaf(self, leaf: int) -> InclusionProof:
        return self.proof(self.index_of_leaf(leaf))


class MerkleTreeBuilder:
    """
    Builds fixed-depth trees with a shared HashEngine.

    Example:
        >>> builder = MerkleTreeBuilder(HashEngine(backend="keccak"), depth=20)
        >>> snapshot = builder.build([11111, 12345, 33333, 44444])
        >>> proof = snapshot.proof_for_leaf(builder.engine.hash_leaf(12345))
        >>> builder.verify(proof)
        True
    """

    def __init__(self, engine: HashEngine, depth: int = DEFAULT_TREE_DEPTH) -> None:
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise MerkleTreeError("depth must be int")
        if not 1 <= depth <= MAX_TREE_DEPTH:
            raise MerkleTreeError(f"depth must be in [1, {MAX_TREE_DEPTH}]")
        self.engine = engine
        self.depth = depth
        self._zero_hashes: Optional[Tuple[int, ...]] = None

    @property
    def zero_hashes(self) -> Tuple[int, ...]:
        """Z[0..depth]: root of an all-zero subtree at each level."""
        if self._zero_hashes is None:
            zeros = [ZERO_ELEMENT]
            for _ in range(self.depth):
                zeros.append(self.engine.hash_pair(zeros[-1], zeros[-1]))
            self._zero_hashes = tuple(zeros)
        return self._zero_hashes

    def build(self, identities: Iterable[int], *, version: int = 0) -> MerkleSnapshot:
        """
        Hash identities into leaves and build the tree.

        Raises:
            MerkleTreeError: If the set is empty or exceeds 2^depth
        """
        identities = tuple(
            check_field_element(v, "identity") for v in identities
        )
        self._check_size(len(identities))
        leaves = self.engine.hash_many([(identity,) for identity in identities])
        return self._build_levels(identities, tuple(leaves), version)

    def _check_size(self, size: int) -> None:
        if size == 0:
            raise MerkleTreeError("Cannot build tree with zero leaves")
        if size > (1 << self.depth):
            raise MerkleTreeError(
                f"{size} leaves exceed capacity 2^{self.depth}"
            )

    def _build_levels(
        self,
        identities: Tuple[int, ...],
        leaves: Tuple[int, ...],
        version: int,
    ) -> MerkleSnapshot:
        zeros = self.zero_hashes
        levels: List[Tuple[int, ...]] = [leaves]
        current: Sequence[int] = leaves

        for level in range(self.depth):
            rows = []
            for i in range(0, len(current), 2):
                left = current[i]
                right = current[i + 1] if i + 1 < len(current) else zeros[level]
                rows.append((left, right))
            current = tuple(self.engine.hash_many(rows))
            levels.append(current)

        snapshot = MerkleSnapshot(
            root=levels[-1][0],
            depth=self.depth,
            identities=identities,
            leaves=leaves,
            levels=tuple(levels),
            zero_hashes=zeros,
            version=version,
        )
        logger.debug(
            "Built Merkle snapshot v%d: %d leaves, depth %d",
            version,
            len(leaves),
            self.depth,
        )
        return snapshot

    def verify(self, proof: InclusionProof, root: Optional[int] = None) -> bool:
        """
        Verify an inclusion proof against `root` (defaults to proof.root).

        Raises:
            MerkleTreeError: If the proof depth differs from the builder depth
        """
        if proof.depth != self.depth:
            raise MerkleTreeError(
                f"proof depth {proof.depth} does not match tree depth {self.depth}"
            )
        target = proof.root if root is None else root
        return verify_path(
            self.engine, proof.leaf, proof.path_elements, proof.path_indices, target
        )


class SnapshotRegistry:
    """
    Cache of tree snapshots keyed by root and by identity sequence.

    A given identity set is built once and reused for every inclusion or
    exclusion proof against it. Safe to share between threads; builds run
    outside the lock, so cached lookups never wait on a build in progress.

    At most `max_snapshots` sets are kept. The least recently used set is
    evicted first, after which `get(root)` for it raises SnapshotNotFound.
    """

    def __init__(
        self, builder: MerkleTreeBuilder, max_snapshots: int = MAX_CACHED_SNAPSHOTS
    ) -> None:
        if max_snapshots < 1:
            raise ValueError("max_snapshots must be positive")
        self.builder = builder
        self.max_snapshots = max_snapshots
        self._by_root: Dict[int, MerkleSnapshot] = {}
        self._by_identities: "OrderedDict[Tuple[int, ...], MerkleSnapshot]" = OrderedDict()
        self._next_version = 1
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_identities)

    def __contains__(self, root: object) -> bool:
        with self._lock:
            return root in self._by_root

    def get_or_build(self, identities: Iterable[int]) -> MerkleSnapshot:
        key = tuple(identities)
        with self._lock:
            cached = self._lookup(key)
            if cached is not None:
                return cached
            version = self._next_version
            self._next_version += 1

        snapshot = self.builder.build(key, version=version)

        with self._lock:
            # Another thread may have finished the same set first.
            cached = self._lookup(key)
            if cached is not None:
                return cached
            self._by_identities[key] = snapshot
            self._by_root.setdefault(snapshot.root, snapshot)
            while len(self._by_identities) > self.max_snapshots:
                _, evicted = self._by_identities.popitem(last=False)
                if self._by_root.get(evicted.root) is evicted:
                    del self._by_root[evicted.root]
                    for remaining in self._by_identities.values():
                        if remaining.root == evicted.root:
                            self._by_root[evicted.root] = remaining
                            break
        logger.info(
            "Registered snapshot v%d with %d identities",
            snapshot.version,
            snapshot.size,
        )
        return snapshot

    def _lookup(self, key: Tuple[int, ...]) -> Optional[MerkleSnapshot]:
        cached = self._by_identities.get(key)
        if cached is not None:
            self._by_identities.move_to_end(key)
        return cached

    def get(self, root: int) -> MerkleSnapshot:
        with self._lock:
            snapshot = self._by_root.get(root)
        if snapshot is None:
            raise SnapshotNotFound(f"no snapshot registered for root {root}")
        return snapshot

    def roots(self) -> List[int]:
        with self._lock:
            return sorted(self._by_root, key=lambda r: self._by_root[r].version)


def export_snapshot(snapshot: MerkleSnapshot) -> Dict[str, Any]:
    """JSON-compatible export (decimal strings)."""
    return {
        "depth": snapshot.depth,
        "version": snapshot.version,
        "root": str(snapshot.root),
        "identities": [str(i) for i in snapshot.identities],
    }


def import_snapshot(builder: MerkleTreeBuilder, data: Dict[str, Any]) -> MerkleSnapshot:
    """
    Rebuild a snapshot from an export and check its root.

    Raises:
        MerkleTreeError: If the depth or root does not match
    """
    try:
        depth = int(data["depth"])
        root = int(data["root"])
        identities = [int(i) for i in data["identities"]]
        version = int(data.get("version", 0))
    except (KeyError, TypeError, ValueError) as exc:
        raise MerkleTreeError("malformed snapshot export") from exc

    if depth != builder.depth:
        raise MerkleTreeError(
            f"snapshot depth {depth} does not match builder depth {builder.depth}"
        )
    snapshot = builder.build(identities, version=version)
    if snapshot.root != root:
        raise MerkleTreeError("snapshot root does not match its identities")
    return snapshot
