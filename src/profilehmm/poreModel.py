#!/usr/bin/env python
"""poreModel.py contains the per kmer Gaussian signal model used by the profile HMM"""
########################################################################
# File: poreModel.py
#  executable: poreModel.py
#
# History: 10/19/26 Created
########################################################################

from __future__ import print_function
import os
import numpy as np

from collections import namedtuple
from itertools import product

from profilehmm.utils import kmer_rank, rc_kmer_rank, is_non_canonical_iupac_base

GaussianParameters = namedtuple("GaussianParameters", ["mean", "stdv", "log_stdv"])


class PoreModel(object):
    """Expected current level for every kmer of an alphabet plus the per read scaling parameters.

    The scaled gaussian parameters are baked once whenever the scalings change so the inner loop
    of the HMM only ever looks them up.
    """

    def __init__(self, kmers, level_means, level_stdvs, sd_means=None, sd_stdvs=None, name=None):
        assert len(kmers) > 0, "PoreModel needs at least one kmer"
        assert len(kmers) == len(level_means) == len(level_stdvs), \
            "kmers, level_means and level_stdvs must be the same length: {} {} {}".format(len(kmers),
                                                                                      len(level_means),
                                                                                      len(level_stdvs))
        self.name = name
        self.k = len(kmers[0])
        self.alphabet = "".join(sorted(set("".join(kmers))))
        for base in self.alphabet:
            assert not is_non_canonical_iupac_base(base), \
                "You cannot use IUPAC character to represent multiple bases. {}".format(base)
        self.alphabet_size = len(self.alphabet)
        self.num_kmers = self.alphabet_size ** self.k
        self.sorted_kmer_tuple = tuple("".join(x) for x in product(self.alphabet, repeat=self.k))
        assert len(kmers) == self.num_kmers, \
            "Model is missing kmers: got {} expected {}".format(len(kmers), self.num_kmers)

        if sd_means is None:
            sd_means = np.ones(len(kmers))
        if sd_stdvs is None:
            sd_stdvs = np.ones(len(kmers))

        # store everything by kmer rank
        order = np.asarray([self.get_kmer_rank(kmer) for kmer in kmers])
        assert len(set(order)) == len(order), "Model has duplicate kmers"
        self.level_means = np.zeros(self.num_kmers)
        self.level_stdvs = np.zeros(self.num_kmers)
        self.sd_means = np.zeros(self.num_kmers)
        self.sd_stdvs = np.zeros(self.num_kmers)
        self.level_means[order] = level_means
        self.level_stdvs[order] = level_stdvs
        self.sd_means[order] = sd_means
        self.sd_stdvs[order] = sd_stdvs
        assert not np.any(self.level_stdvs <= 0.0), "PoreModel: this model has level_stdv <= 0"
        assert not np.any(self.sd_stdvs <= 0.0), "PoreModel: this model has sd_stdv <= 0"

        # per read scalings
        self.shift = 0.0
        self.scale = 1.0
        self.drift = 0.0
        self.var = 1.0
        self.scale_sd = 1.0
        self.var_sd = 1.0

        self.scaled_params = []
        self.scaled_sd_params = []
        self.bake_gaussian_parameters()

    def set_scalings(self, shift=None, scale=None, drift=None, var=None, scale_sd=None, var_sd=None):
        """Update the per read scaling parameters and re-bake the scaled gaussians"""
        if shift is not None:
            self.shift = shift
        if scale is not None:
            self.scale = scale
        if drift is not None:
            self.drift = drift
        if var is not None:
            assert var > 0, "var must be positive: {}".format(var)
            self.var = var
        if scale_sd is not None:
            assert scale_sd > 0, "scale_sd must be positive: {}".format(scale_sd)
            self.scale_sd = scale_sd
        if var_sd is not None:
            assert var_sd > 0, "var_sd must be positive: {}".format(var_sd)
            self.var_sd = var_sd
        self.bake_gaussian_parameters()

    def bake_gaussian_parameters(self):
        """Precompute the scaled level and spread gaussians for every kmer"""
        means = self.level_means * self.scale + self.shift
        stdvs = self.level_stdvs * self.var
        log_stdvs = np.log(stdvs)
        self.scaled_params = [GaussianParameters(float(m), float(s), float(l))
                              for m, s, l in zip(means, stdvs, log_stdvs)]

        sd_means = self.sd_means * self.scale_sd
        sd_stdvs = self.sd_stdvs * np.sqrt(np.power(self.scale_sd, 3.0) / self.var_sd)
        sd_log_stdvs = np.log(sd_stdvs)
        self.scaled_sd_params = [GaussianParameters(float(m), float(s), float(l))
                                 for m, s, l in zip(sd_means, sd_stdvs, sd_log_stdvs)]

    def get_scaled_parameters(self, rank):
        """Scaled gaussian for the level of a kmer rank"""
        return self.scaled_params[rank]

    def get_scaled_sd_parameters(self, rank):
        """Scaled gaussian for the event spread of a kmer rank"""
        return self.scaled_sd_params[rank]

    def get_kmer_rank(self, kmer):
        """Get the model index for a given kmer

        ex: get_kmer_rank(AAAAA) = 0
        :param kmer: nucleotide sequence
        """
        assert len(kmer) == self.k, "Kmer ({}) length does not match model kmer length: {}".format(kmer, self.k)
        return kmer_rank(kmer, alphabet=self.alphabet)

    def get_rc_kmer_rank(self, kmer):
        """Get the model index for the reverse complement of a kmer"""
        assert len(kmer) == self.k, "Kmer ({}) length does not match model kmer length: {}".format(kmer, self.k)
        return rc_kmer_rank(kmer, alphabet=self.alphabet)

    def index_to_kmer(self, index):
        """Get kmer from a given index

        ex: index_to_kmer(0) = "AAAAA"
        :param index: number representing kmer
        """
        assert index < self.num_kmers, \
            "The kmer index is out of bounds given the alphabet and kmer length. {} > {}".format(index, self.num_kmers)
        return self.sorted_kmer_tuple[index]


def load_pore_model(model_file, name=None):
    """Load a pore model from a nanopolish model file

    the model file has the format:
    1st couple lines have # : #ont_model_name	r9.4_180mv_450bps_6mer
                              #kit	r9.4_450bps
                              #strand	template
                              #k	6
    header line: kmer	level_mean	level_stdv	sd_mean	sd_stdv	weight

    :param model_file: path to model file
    :param name: optional model name, defaults to #ont_model_name or the file name
    """
    assert os.path.exists(model_file), "[load_pore_model] - didn't find model here: {}".format(model_file)
    kmers = []
    level_means = []
    level_stdvs = []
    sd_means = []
    sd_stdvs = []
    header_name = None

    with open(model_file, 'r') as fH:
        for line in fH:
            if line.startswith("#"):
                split_line = line[1:].split()
                if len(split_line) == 2 and split_line[0] == "ont_model_name":
                    header_name = split_line[1]
                continue
            split_line = line.split()
            if len(split_line) == 0 or split_line[1] == "level_mean":
                continue
            assert len(split_line) >= 5, "[load_pore_model] - incorrect line in {}: {}".format(model_file, line)
            kmers.append(split_line[0])
            level_means.append(float(split_line[1]))
            level_stdvs.append(float(split_line[2]))
            sd_means.append(float(split_line[3]))
            sd_stdvs.append(float(split_line[4]))

    if name is None:
        name = header_name if header_name is not None else os.path.basename(model_file)
    return PoreModel(kmers, level_means, level_stdvs, sd_means=sd_means, sd_stdvs=sd_stdvs, name=name)


def write_pore_model(pore_model, out_file):
    """Write out a pore model in nanopolish model file format

    :param pore_model: PoreModel object
    :param out_file: path to new model file
    """
    with open(out_file, 'w') as f:
        f.write("#ont_model_name\t{}\n".format(pore_model.name))
        f.write("#k\t{}\n".format(pore_model.k))
        f.write("kmer\tlevel_mean\tlevel_stdv\tsd_mean\tsd_stdv\n")
        for index, kmer in enumerate(pore_model.sorted_kmer_tuple):
            f.write("{kmer}\t{level_mean}\t{level_stdv}\t{sd_mean}\t{sd_stdv}\n"
                    "".format(kmer=kmer, level_mean=pore_model.level_means[index],
                              level_stdv=pore_model.level_stdvs[index], sd_mean=pore_model.sd_means[index],
                              sd_stdv=pore_model.sd_stdvs[index]))
    return out_file
