# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import functools
import sys

import termcolor
import yaml


def parse_yaml_file(path, max_elements_count=100000):
    with open(path) as f:
        parsed = yaml.load(f, Loader=yaml.SafeLoader)
        # mitigate yaml bomb
        _count_elements(parsed, max_elements_count=max_elements_count)
        return parsed


def _count_elements(value, count=0, max_elements_count=100000):
    '''
    recursively counts elements contained in the given value. Before each recursion step,
    the amount of encountered elements is checked against a maximum allowed elements count.
    If said threshold is exceeded, recursion is aborted and a `ValueError` is raised.

    @param value: typically a dict or a list. Other types will yield a count of 1
    '''
    if count > max_elements_count:
        raise ValueError('dict too large')

    if isinstance(value, list):
        values = value
    elif isinstance(value, dict):
        values = value.values()
    else:
        return 1

    leng = 0
    for v in values:
        leng += _count_elements(v, count=count+leng, max_elements_count=max_elements_count)

    return leng


def merge_dicts(base: dict, *other: dict):
    '''
    merges copies of the given dict instances and returns the merge result.
    The arguments remain unmodified.

    Merging is done using the `deepmerge` module. In case of merge conflicts, values from
    `other` overwrite values from `base`.
    '''
    if base is None:
        raise ValueError('base must not be None')

    from deepmerge import Merger

    merger = Merger([(dict, ['merge'])], ['override'], ['override'])

    from copy import deepcopy

    return functools.reduce(
        lambda b, o: merger.merge(b, deepcopy(o)),
        [base, *other],
        {},
    )


def print_coloured(msg: str, colour: str=None, outfh=sys.stdout):
    if not msg:
        return
    if not outfh.isatty():
        outfh.write(msg + '\n')
    else:
        outfh.write(termcolor.colored(msg, colour) + '\n')

    outfh.flush()
