import numpy as np
import pytest

from corpus import DocumentNotFoundError, InMemoryDocumentSource, SyntheticLinearCorpus
from learners.loss import Hinge
from learners.sgd import COEFF_FLOOR, SGD
from utils.sparse import SparseVector


class _UnitLoss:
    """Always steps by +1, whatever the margin."""

    id = "unit"

    def loss(self, margin, label):
        return 0.0

    def derivative(self, margin, label):
        return 1.0


def _toy_source():
    source = InMemoryDocumentSource()
    source.add("a", {0: 1.0, 2: 2.0}, "pos")
    source.add("b", {1: 1.0, 2: 1.0}, "neg")
    source.add("c", {0: 2.0, 3: 1.0}, "pos")
    source.add("d", {1: 2.0, 3: 1.0}, "neg")
    return source


def _reference_scores(source, docs, queries, *, alpha, lam, bias, epochs, loss):
    """Plain dense SGD with eager shrinkage, for comparison."""
    weights = {}
    bias_weight = 1.0
    for _ in range(epochs):
        for doc_id in docs:
            vec = dict(source.vector(doc_id).pairs())
            label = 1 if source.label(doc_id) == "pos" else -1
            margin = sum(weights.get(i, 0.0) * x for i, x in vec.items()) + bias * bias_weight
            d = loss.derivative(margin, label)
            for i, x in vec.items():
                weights[i] = weights.get(i, 0.0) + alpha * d * x
            bias_weight += alpha * d * bias
            weights = {i: w * (1.0 - alpha * lam) for i, w in weights.items()}
    return [
        sum(weights.get(i, 0.0) * x for i, x in source.vector(q).pairs()) + bias * bias_weight
        for q in queries
    ]


def test_single_step_scenario():
    source = InMemoryDocumentSource()
    source.add("doc", {1: 1.0}, "pos")
    clf = SGD(source, "pos", "neg", _UnitLoss(), alpha=0.1, gamma=0.0, bias=0.0, lam=0.0, max_iter=1)

    clf.train(["doc"])

    assert clf.weights_[1] == 0.1
    assert clf.coeff_ == 1.0
    assert clf.predict(SparseVector.from_pairs([(1, 1.0)])) == pytest.approx(0.1)
    assert clf.predict("doc") == pytest.approx(0.1)


def test_empty_training_set_is_noop():
    clf = SGD(_toy_source(), "pos", "neg", Hinge())
    clf.train([])
    assert clf.coeff_ == 1.0
    assert len(clf.weights_) == 0
    assert clf.bias_weight_ == 1.0
    assert clf.history_ == []


def test_training_is_deterministic():
    source = SyntheticLinearCorpus(n_docs=60, n_features=20, nnz=5, rng=np.random.default_rng(3))
    docs = source.doc_ids()
    first = SGD(source, "pos", "neg", Hinge(), alpha=0.05, max_iter=5).train(docs)
    second = SGD(source, "pos", "neg", Hinge(), alpha=0.05, max_iter=5).train(docs)

    assert np.array_equal(first.weights_.ids, second.weights_.ids)
    assert np.array_equal(first.weights_.values, second.weights_.values)
    assert first.coeff_ == second.coeff_
    assert first.bias_weight_ == second.bias_weight_
    assert [first.predict(d) for d in docs] == [second.predict(d) for d in docs]

    second.reset()
    second.train(docs)
    assert np.array_equal(first.weights_.values, second.weights_.values)


def test_rescale_preserves_logical_weights():
    source = _toy_source()
    clf = SGD(source, "pos", "neg", Hinge(), alpha=0.1, lam=0.5, gamma=0.0, max_iter=3)
    clf.train(source.doc_ids())
    assert clf.coeff_ < 1.0

    before_weights = clf.weights
    before_scores = [clf.predict(d) for d in source.doc_ids()]
    clf.rescale()

    assert clf.coeff_ == 1.0
    after_weights = clf.weights
    assert list(after_weights) == list(before_weights)
    np.testing.assert_allclose(
        list(after_weights.values()), list(before_weights.values()), rtol=1e-9
    )
    np.testing.assert_allclose(
        [clf.predict(d) for d in source.doc_ids()], before_scores, rtol=1e-9
    )


def test_coefficient_underflow_is_rescaled_transparently():
    source = _toy_source()
    docs = source.doc_ids()
    # shrinks coeff by half per step, so 40 steps cross the floor once
    clf = SGD(source, "pos", "neg", Hinge(), alpha=0.5, lam=1.0, gamma=0.0, max_iter=10)
    clf.train(docs)

    assert clf.coeff_ >= COEFF_FLOOR
    expected = _reference_scores(
        source, docs, docs, alpha=0.5, lam=1.0, bias=1.0, epochs=10, loss=Hinge()
    )
    np.testing.assert_allclose([clf.predict(d) for d in docs], expected, rtol=1e-9, atol=1e-12)


def test_lazy_scaling_matches_dense_sgd():
    source = _toy_source()
    docs = source.doc_ids()
    clf = SGD(source, "pos", "neg", Hinge(), alpha=0.05, lam=0.01, bias=0.5, gamma=0.0, max_iter=4)
    clf.train(docs)
    expected = _reference_scores(
        source, docs, docs, alpha=0.05, lam=0.01, bias=0.5, epochs=4, loss=Hinge()
    )
    np.testing.assert_allclose([clf.predict(d) for d in docs], expected, rtol=1e-9, atol=1e-12)


def test_reset_matches_fresh_instance():
    source = _toy_source()
    trained = SGD(source, "pos", "neg", Hinge(), alpha=0.1, max_iter=5)
    trained.train(source.doc_ids())
    assert trained.history_

    trained.reset()
    fresh = SGD(source, "pos", "neg", Hinge(), alpha=0.1, max_iter=5)
    for doc_id in source.doc_ids():
        assert trained.predict(doc_id) == fresh.predict(doc_id)
    assert trained.coeff_ == 1.0
    assert len(trained.weights_) == 0
    assert trained.history_ == []
    assert trained.alpha == 0.1 and trained.max_iter == 5


def test_coefficient_decay_grows_with_lambda():
    source = _toy_source()
    coeffs = []
    for lam in (0.0, 0.001, 0.01, 0.1, 1.0):
        clf = SGD(source, "pos", "neg", Hinge(), alpha=0.1, lam=lam, gamma=0.0, max_iter=2)
        clf.train(source.doc_ids())
        coeffs.append(clf.coeff_)
    assert coeffs[0] == 1.0
    assert all(a > b for a, b in zip(coeffs, coeffs[1:]))


def test_never_exceeds_max_iter():
    source = _toy_source()
    clf = SGD(source, "pos", "neg", Hinge(), gamma=-1.0, max_iter=3)
    clf.train(source.doc_ids())
    assert len(clf.history_) == 3


def test_stops_early_when_metric_settles():
    source = _toy_source()
    clf = SGD(source, "pos", "neg", Hinge(), gamma=1e9, max_iter=50)
    clf.train(source.doc_ids())
    assert len(clf.history_) == 2


def test_update_metric_is_mean_step_size():
    source = _toy_source()
    clf = SGD(
        source, "pos", "neg", _UnitLoss(), alpha=0.2, gamma=0.0, max_iter=2, convergence="update"
    )
    clf.train(source.doc_ids())
    assert [rec.metric for rec in clf.history_] == pytest.approx([0.2, 0.2])


def test_history_accumulates_across_train_calls():
    source = _toy_source()
    clf = SGD(source, "pos", "neg", Hinge(), gamma=0.0, max_iter=2)
    clf.train(source.doc_ids())
    clf.train(source.doc_ids())
    assert [rec.epoch for rec in clf.history_] == [0, 1, 2, 3]
    assert clf.history_[-1].to_dict()["n_docs"] == 4


def test_empty_document_only_moves_bias():
    source = InMemoryDocumentSource()
    source.add("blank", {}, "pos")
    clf = SGD(source, "pos", "neg", _UnitLoss(), alpha=0.1, bias=1.0, gamma=0.0, max_iter=1)
    clf.train(["blank"])
    assert len(clf.weights_) == 0
    assert clf.bias_weight_ == pytest.approx(1.1)
    assert clf.predict("blank") == pytest.approx(1.1)


def test_lookup_failure_propagates_with_partial_state():
    source = _toy_source()
    clf = SGD(source, "pos", "neg", _UnitLoss(), alpha=0.1, gamma=0.0, max_iter=1)
    with pytest.raises(DocumentNotFoundError):
        clf.train(["a", "b", "missing", "c"])
    assert clf.weights_[0] == pytest.approx(0.1)
    # feature 3 only appears in "c" and "d"
    assert len(clf.weights_) == 3
    assert 3 not in clf.weights_
    assert clf.history_ == []


def test_predict_ignores_unseen_features():
    source = _toy_source()
    clf = SGD(source, "pos", "neg", Hinge(), alpha=0.1).train(source.doc_ids())
    size = len(clf.weights_)
    unseen = SparseVector.from_pairs([(1000, 3.0)])
    assert clf.predict(unseen) == pytest.approx(clf.bias * clf.bias_weight_)
    assert len(clf.weights_) == size


def test_predict_by_id_matches_vector():
    source = _toy_source()
    clf = SGD(source, "pos", "neg", Hinge(), alpha=0.1).train(source.doc_ids())
    for doc_id in source.doc_ids():
        assert clf.predict(doc_id) == clf.predict(source.vector(doc_id))


def test_untrained_classifier_scores_bias_only():
    clf = SGD(_toy_source(), "pos", "neg", Hinge())
    assert clf.predict("a") == 1.0
    assert clf.classify("a") == "pos"
    assert clf.classify("a", threshold=1.0) == "neg"


def test_untrained_score_follows_bias_input():
    clf = SGD(_toy_source(), "pos", "neg", Hinge(), bias=2.5)
    assert clf.bias_weight_ == 1.0
    assert clf.predict("a") == 2.5


def test_learns_separable_corpus():
    source = SyntheticLinearCorpus(n_docs=300, n_features=30, nnz=6, rng=np.random.default_rng(7))
    docs = source.doc_ids()
    clf = SGD(source, "pos", "neg", Hinge(), alpha=0.05, max_iter=30).train(docs)
    accuracy = np.mean([clf.classify(d) == source.label(d) for d in docs])
    assert accuracy > 0.85


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"loss": None}, "loss function"),
        ({"max_iter": 0}, "max_iter"),
        ({"max_iter": 0.5}, "max_iter"),
        ({"convergence": "weights"}, "convergence"),
        ({"alpha": 1.0, "lam": 1.0}, "alpha \\* lambda"),
    ],
)
def test_construction_rejects_bad_arguments(kwargs, message):
    params = {"loss": Hinge()}
    params.update(kwargs)
    loss = params.pop("loss")
    with pytest.raises(ValueError, match=message):
        SGD(_toy_source(), "pos", "neg", loss, **params)


def test_trains_on_very_large_feature_ids():
    source = InMemoryDocumentSource()
    source.add("doc", {10**12: 1.0}, "pos")
    clf = SGD(source, "pos", "neg", _UnitLoss(), alpha=0.1, gamma=0.0, bias=0.0, lam=0.0, max_iter=1)

    clf.train(["doc"])

    assert len(clf.weights_) == 1
    assert clf.weights_[10**12] == 0.1
    assert clf.weights == {10**12: 0.1}
    assert clf.predict("doc") == pytest.approx(0.1)
    assert clf.predict(SparseVector.from_pairs([(10**12 - 1, 1.0)])) == 0.0
