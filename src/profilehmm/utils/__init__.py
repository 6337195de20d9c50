from __future__ import print_function

import numpy as np

# canonical nucleotide alphabet used by the pore models
DNA_ALPHABET = "ACGT"
IUPAC_BASES = ("A", "C", "T", "G", "W", "R", "Y", "S", "K", "M", "B", "D", "H", "V", "N")


def kmer_iterator(dna, k):
    """Yield every kmer of length k in dna, stepping one base at a time

    :param dna: sequence to walk
    :param k: kmer length
    """
    assert k >= 1, "kmer length must be >= 1: {}".format(k)
    for i in range(len(dna) - k + 1):
        yield dna[i:i + k]


def reverse_complement(dna, reverse=True, complement=True):
    """
    Make the reverse complement of a DNA sequence. You can also just make the
    complement or the reverse strand (see options).

    Input: A DNA sequence containing 'ATGC' base pairs and wild card letters

    Output: DNA sequence as a string.

    Options: Specify reverse and/or complement as False to get the complement or
             reverse of the input DNA.  If both are False, input is returned.

    """

    # Make translation table
    trans_table = str.maketrans('ACGTMKRYBVDHNacgtmkrybvdhn',
                                "TGCAKMYRVBHDNtgcakmyrvbhdn")
    # Make complement to DNA
    comp_dna = dna.translate(trans_table)
    # Output all as strings
    if reverse and complement:
        return comp_dna[::-1]
    if reverse and not complement:
        return dna[::-1]
    if complement and not reverse:
        return comp_dna
    if not complement and not reverse:
        return dna


def is_non_canonical_iupac_base(nuc):
    """Return True if base is one of the IUPAC bases but not ATGC"""
    if nuc in IUPAC_BASES and nuc not in "ATGC":
        return True
    else:
        return False


def kmer_rank(kmer, alphabet=DNA_ALPHABET):
    """Get the model index for a given kmer

    ex: kmer_rank(AAAAA) = 0
    :param kmer: nucleotide sequence
    :param alphabet: model alphabet, ranks follow the sorted alphabet
    """
    alphabet = "".join(sorted(alphabet))
    alphabet_size = len(alphabet)
    rank = 0
    for nuc in kmer:
        base_rank = alphabet.find(nuc)
        assert base_rank != -1, "Nucleotide not found in model alphabet: kmer={}, alphabet={}".format(kmer, alphabet)
        rank = rank * alphabet_size + base_rank
    return rank


def rc_kmer_rank(kmer, alphabet=DNA_ALPHABET):
    """Get the model index of the reverse complement of a kmer

    :param kmer: nucleotide sequence
    :param alphabet: model alphabet
    """
    return kmer_rank(reverse_complement(kmer, reverse=True, complement=True), alphabet=alphabet)


def add_logs(a, b):
    """Add two probabilities stored in log space without leaving log space.

    -inf is the log of zero and is handled without producing nan
    """
    return float(np.logaddexp(a, b))
