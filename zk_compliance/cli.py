"""
Command-line interface for compliance proof operators.

Builds tree roots and inclusion proofs, inspects verification keys and
verifies exported proof bundles.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List

import click

from zk_compliance import __version__
from zk_compliance.config import DEFAULT_TREE_DEPTH, HASH_BACKENDS, VERIFIER_MODES
from zk_compliance.exceptions import ComplianceProofError, LeafNotFoundError
from zk_compliance.factory import build_gateway
from zk_compliance.hashing import HashEngine
from zk_compliance.merkle import MerkleTreeBuilder, export_snapshot
from zk_compliance.snark.assets import ArtifactResolver
from zk_compliance.snark.formatter import ProofFormatter
from zk_compliance.statements import CIRCUIT_REGISTRY, ProofType


def _fail(message: str) -> None:
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    sys.exit(1)


def _read_identities(path: str, credentials: bool, engine: HashEngine) -> List[int]:
    lines = [
        line.strip()
        for line in Path(path).read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if credentials:
        return [engine.identity_from_credential(line) for line in lines]
    try:
        return [int(line) for line in lines]
    except ValueError as exc:
        raise click.BadParameter(
            f"identities must be decimal integers ({exc}); use --credentials "
            "for addresses"
        ) from None


_hash_backend_option = click.option(
    "--hash-backend",
    type=click.Choice(HASH_BACKENDS, case_sensitive=False),
    default=None,
    help="Field hash backend (default: ZK_COMPLIANCE_HASH_BACKEND or poseidon)",
)
_depth_option = click.option(
    "--depth",
    type=click.IntRange(1, 32),
    default=DEFAULT_TREE_DEPTH,
    show_default=True,
    help="Merkle tree depth",
)
_credentials_option = click.option(
    "--credentials",
    is_flag=True,
    help="Treat each line as an address/credential and derive its identity",
)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
def main(verbose):
    """
    Privacy-preserving compliance proofs.

    Merkle membership, nullifiers, witness assembly and Groth16 verification
    for whitelist, blacklist, jurisdiction, accreditation and aggregate
    compliance statements.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("tree-root")
@click.argument("identities_file", type=click.Path(exists=True, dir_okay=False))
@_depth_option
@_hash_backend_option
@_credentials_option
@click.option("--export", "export_path", type=click.Path(), help="Write snapshot JSON")
def tree_root(identities_file, depth, hash_backend, credentials, export_path):
    """
    Compute the Merkle root of an identity set (one identity per line).

    Examples:

        zk-compliance tree-root whitelist.txt --depth 20
    """
    try:
        engine = HashEngine(backend=hash_backend)
        identities = _read_identities(identities_file, credentials, engine)
        snapshot = MerkleTreeBuilder(engine, depth=depth).build(identities)
    except (ComplianceProofError, ValueError) as e:
        _fail(str(e))

    click.echo(str(snapshot.root))
    if export_path:
        Path(export_path).write_text(
            json.dumps(export_snapshot(snapshot), indent=2), encoding="utf-8"
        )
        click.echo(
            click.style(f"✓ Snapshot written to {export_path}", fg="green"), err=True
        )


@main.command("inclusion-proof")
@click.argument("identities_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("identity")
@_depth_option
@_hash_backend_option
@_credentials_option
def inclusion_proof(identities_file, identity, depth, hash_backend, credentials):
    """
    Print the inclusion proof of IDENTITY as JSON.

    Exits with status 1 if the identity is not in the set.
    """
    engine = HashEngine(backend=hash_backend)
    identities = _read_identities(identities_file, credentials, engine)
    if credentials:
        target = engine.identity_from_credential(identity)
    else:
        try:
            target = int(identity)
        except ValueError:
            raise click.BadParameter("IDENTITY must be a decimal integer") from None

    try:
        snapshot = MerkleTreeBuilder(engine, depth=depth).build(identities)
        proof = snapshot.proof_for_leaf(engine.hash_leaf(target))
    except LeafNotFoundError:
        _fail("identity not found in set")
    except (ComplianceProofError, ValueError) as e:
        _fail(str(e))

    click.echo(json.dumps(proof.to_dict(), indent=2))


@main.command("inspect-vk")
@click.argument("proof_type", type=click.Choice([t.value for t in ProofType]))
@click.option("--build-dir", type=click.Path(file_okay=False), default=None)
def inspect_vk(proof_type, build_dir):
    """Load and check the verification key for PROOF_TYPE."""
    spec = CIRCUIT_REGISTRY[ProofType(proof_type)]
    resolver = ArtifactResolver(build_dir)
    try:
        vk = resolver.load_verification_key(spec.proof_type)
    except ComplianceProofError as e:
        _fail(str(e))

    click.echo(click.style(f"✓ {spec.circuit_name}", fg="green"))
    click.echo(f"  key:            {resolver.resolve_vk(spec.circuit_name)}")
    click.echo(f"  public inputs:  {vk.n_public}")
    click.echo(f"  public signals: {', '.join(spec.public_signals)}")


@main.command()
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--mode",
    type=click.Choice(VERIFIER_MODES, case_sensitive=False),
    default=None,
    help="Verifier mode (default: ZK_COMPLIANCE_VERIFIER_MODE or real)",
)
@click.option("--build-dir", type=click.Path(file_okay=False), default=None)
def verify(bundle, mode, build_dir):
    """
    Verify an exported proof bundle (CBOR).

    Exits with status 0 if the proof is accepted, 1 otherwise.
    """
    try:
        proof_type, proof = ProofFormatter.import_bundle(Path(bundle).read_bytes())
        gateway = build_gateway(mode, resolver=ArtifactResolver(build_dir))
        accepted = gateway.verify(proof_type, proof)
    except ComplianceProofError as e:
        _fail(str(e))

    if not accepted:
        _fail(f"{proof_type.value} proof rejected ({gateway.mode} mode)")
    click.echo(
        click.style(f"✓ {proof_type.value} proof accepted ({gateway.mode} mode)", fg="green")
    )


if __name__ == "__main__":
    main()
