import hashlib

from coincurve import PublicKeyXOnly

from tapstr import G, AtomicSwapProtocol, SwapState, TapstrSettings
from tapstr.taproot import p2tr_script

TXID = "00" * 32


def test_end_to_end_swap(seller_key, secret, rng, config):
    proto = AtomicSwapProtocol.setup(seller_key=seller_key, rng=rng, config=config)
    result = proto.run(
        "Buy this digital item",
        prev_txid=TXID,
        prev_vout=0,
        amount=10_000,
        secret=secret,
        created_at=1_700_000_000,
    )

    assert result.session.state is SwapState.COMPLETED
    assert result.secret == secret
    assert result.secret_matches
    assert result.event.content == "Buy this digital item"
    assert result.event.verify()
    assert len(result.steps) == 5

    swap = result.session.swap
    assert swap.message == result.event.digest
    sig = bytes.fromhex(result.event.sig)
    assert PublicKeyXOnly(swap.seller_key.x_bytes()).verify(sig, result.event.digest)
    assert hashlib.sha256(swap.adaptor_sig.s.to_bytes()).digest() == swap.commitment.digest


def test_lock_output_is_spendable_by_seller(seller_key, rng, config):
    proto = AtomicSwapProtocol.setup(seller_key=seller_key, rng=rng, config=config)
    result = proto.run("item", prev_txid=TXID, prev_vout=1, amount=5_000)
    spend_key = proto.lock_spend_key(result.session.swap.commitment.digest)
    assert spend_key * G == result.lock.output_key


def test_runs_use_fresh_secrets(rng, config):
    proto = AtomicSwapProtocol.setup(rng=rng, config=config)
    a = proto.run("item", prev_txid=TXID, prev_vout=0, amount=5_000)
    b = proto.run("item", prev_txid=TXID, prev_vout=0, amount=5_000)
    assert a.secret != b.secret
    assert a.session.swap.commitment.digest != b.session.swap.commitment.digest


def test_configured_event_kind(rng):
    config = TapstrSettings(nostr_kind=30023)
    proto = AtomicSwapProtocol.setup(rng=rng, config=config)
    result = proto.run("item", prev_txid=TXID, prev_vout=0, amount=5_000)
    assert result.event.kind == 30023
    assert result.event.verify()


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("TAPSTR_SWAP_TIMEOUT", "12.5")
    monkeypatch.setenv("TAPSTR_DUST_LIMIT", "1000")
    config = TapstrSettings()
    assert config.swap_timeout == 12.5
    assert config.dust_limit == 1000


def test_seller_claims_lock_output(seller_key, rng, config):
    proto = AtomicSwapProtocol.setup(seller_key=seller_key, rng=rng, config=config)
    destination = p2tr_script(seller_key * G)
    result = proto.run(
        "item", prev_txid=TXID, prev_vout=0, amount=5_000,
        claim_to=destination, fee=200,
    )

    spend = result.spend
    assert spend is not None
    assert len(result.steps) == 6
    assert spend.tx.outs[0].value == 4_800
    assert spend.tx.outs[0].script_pubkey == destination
    assert spend.tx.ins[0].prevout.txid == result.lock.txid
    verifier = PublicKeyXOnly(result.lock.output_key.x_bytes())
    assert verifier.verify(spend.signature, spend.sighash)


def test_run_without_claim_builds_no_spend(rng, config):
    proto = AtomicSwapProtocol.setup(rng=rng, config=config)
    result = proto.run("item", prev_txid=TXID, prev_vout=0, amount=5_000)
    assert result.spend is None
