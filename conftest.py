# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import os

import git
import pytest


def commit_file(
    repo: git.Repo,
    path: str,
    message: str,
    content: str=None,
) -> git.Commit:
    abs_path = os.path.join(repo.working_tree_dir, path)
    os.makedirs(os.path.dirname(abs_path), exist_ok=True)
    with open(abs_path, 'a') as f:
        f.write(content if content is not None else message)

    repo.index.add([abs_path])
    return repo.index.commit(message)


@pytest.fixture
def git_repo(tmpdir):
    repo = git.Repo.init(os.path.join(tmpdir, 'repo'))
    with repo.config_writer() as cfg:
        cfg.set_value('user', 'name', 'Jane Doe')
        cfg.set_value('user', 'email', 'jane.doe@example.com')

    repo.index.commit('first commit')

    return repo


@pytest.fixture
def tagged_repo(git_repo):
    '''
    history (oldest first):

    first commit       <- v1.0.0
    add feature
    fix null check\n\nlong description
    document feature   <- v1.1.0 (annotated), branch `release-1.1`
    unreleased change  <- HEAD
    '''
    repo = git_repo
    repo.create_tag('v1.0.0')

    commit_file(repo, 'src/feature.py', 'add feature')
    commit_file(repo, 'src/fix.py', 'fix null check\n\nlong description')
    commit_file(repo, 'docs/feature.md', 'document feature')

    repo.create_tag('v1.1.0', message='release 1.1.0')
    repo.create_head('release-1.1')

    commit_file(repo, 'src/next.py', 'unreleased change')

    return repo
