import numpy as np
import pytest

from gefp import IndexAlreadyBuilt, ScanCorpus, ShapeMismatch


def test_insert_returns_indices():
    corpus = ScanCorpus()
    assert corpus.insert([1, 2], [0.0, 1.0], [0.0, 0.0]) == 0
    assert corpus.insert([3], [2.0], [2.0]) == 1
    assert len(corpus) == 2
    np.testing.assert_array_equal(corpus[1].words, [3])


def test_shape_mismatch_leaves_corpus_unchanged():
    corpus = ScanCorpus([([1, 2], [0.0, 1.0], [0.0, 1.0])])
    with pytest.raises(ShapeMismatch):
        corpus.insert([1, 2, 3], [0.0, 1.0], [0.0, 1.0, 2.0])
    assert len(corpus) == 1


def test_negative_word_ids_rejected():
    with pytest.raises(ValueError):
        ScanCorpus().insert([1, -2], [0.0, 1.0], [0.0, 1.0])


def test_insert_after_close():
    corpus = ScanCorpus([([1], [0.0], [0.0])])
    scans = corpus.close()
    assert len(scans) == 1
    with pytest.raises(IndexAlreadyBuilt):
        corpus.insert([2], [0.0], [0.0])
    assert len(corpus) == 1


def test_signature_copies_input():
    words = np.array([4, 5, 6])
    corpus = ScanCorpus()
    corpus.insert(words, np.zeros(3), np.zeros(3))
    words[0] = 99
    assert corpus[0].words[0] == 4
    assert not corpus[0].words.flags.writeable
    assert not corpus[0].is_indexed
