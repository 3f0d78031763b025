# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import abc
import contextlib
import dataclasses
import logging
import os
import shutil
import tempfile
import urllib.parse

import git

import gitutil
import release_notes.model as rnm

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ScmUrl:
    provider: str
    location: str


def parse_scm_url(scm_url: str) -> ScmUrl:
    '''
    parses an SCM connection-url of the form `scm:<provider>:<provider-specific-part>`.

    The character following `scm` is used as delimiter, which allows using `|` for locations that
    contain colons (e.g. `scm|git|git@github.com:org/repo.git`).
    '''
    if not scm_url or len(scm_url) < 4 or not scm_url.startswith('scm'):
        raise rnm.ScmError(f'malformed scm-url (expected scm:<provider>:<location>): {scm_url!r}')

    delimiter = scm_url[3]
    if delimiter not in (':', '|'):
        raise rnm.ScmError(f'unsupported delimiter {delimiter!r} in scm-url: {scm_url!r}')

    parts = scm_url[4:].split(delimiter, 1)
    if len(parts) != 2 or not all(parts):
        raise rnm.ScmError(f'malformed scm-url (expected scm:<provider>:<location>): {scm_url!r}')

    provider, location = parts
    return ScmUrl(provider=provider.lower(), location=location)


class ScmAdapter(abc.ABC):
    '''
    narrow boundary towards a source-control system. Implementations must raise `ScmError` for
    any failure.
    '''

    @abc.abstractmethod
    def open(self, scm_url: str):
        '''
        returns an (opaque) repository handle for the given connection-url
        '''
        raise NotImplementedError

    @abc.abstractmethod
    def change_log(
        self,
        handle,
        file_scope: str,
        start: rnm.Revision,
        end: rnm.Revision,
    ) -> rnm.ChangeLog | None:
        '''
        returns change-sets after `start`, up to and including `end`, restricted to paths below
        `file_scope`.
        '''
        raise NotImplementedError

    def close(self, handle):
        pass


@contextlib.contextmanager
def opened_repository(
    scm_adapter: ScmAdapter,
    scm_url: str,
):
    handle = scm_adapter.open(scm_url)
    try:
        yield handle
    finally:
        scm_adapter.close(handle)


@dataclasses.dataclass
class GitRepositoryHandle:
    git_helper: gitutil.GitHelper
    clone_dir: str | None = None # set if repository was cloned (removed upon close)


class GitScmAdapter(ScmAdapter):
    '''
    SCM adapter for git-repositories (provider `git`).

    Locations that point to an existing directory (or `file://`-urls) are used in place. Other
    locations are cloned into a temporary directory, using the (optional) credentials from
    `git_cfg`. Tokens are only passed to http(s)-locations.

    reverse: if True (the default), change-sets are returned oldest-first
    '''
    def __init__(
        self,
        git_cfg: gitutil.GitCfg | None=None,
        reverse: bool=True,
    ):
        self.git_cfg = git_cfg or gitutil.GitCfg()
        self.reverse = reverse

    def open(self, scm_url: str) -> GitRepositoryHandle:
        parsed = parse_scm_url(scm_url)
        if parsed.provider != 'git':
            raise rnm.ScmError(f'unsupported scm-provider {parsed.provider!r} ({scm_url=})')

        if (local_path := _local_path(parsed.location)):
            logger.debug(f'using local repository at {local_path}')
            try:
                return GitRepositoryHandle(git_helper=gitutil.GitHelper(repo=local_path))
            except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
                raise rnm.ScmError(f'not a git-repository: {local_path}') from e

        clone_dir = tempfile.mkdtemp(prefix='release-note-')
        git_cfg = dataclasses.replace(self.git_cfg, repo_url=parsed.location)
        if (
            git_cfg.auth_type is gitutil.AuthType.HTTP_TOKEN
            and not gitutil.is_http_url(parsed.location)
        ):
            logger.warning(f'not passing token to non-http(s) location {parsed.location}')
            git_cfg = dataclasses.replace(git_cfg, auth=None, auth_type=gitutil.AuthType.PRESET)

        try:
            git_helper = gitutil.GitHelper.clone_into(
                target_directory=clone_dir,
                git_cfg=git_cfg,
            )
        except (git.exc.GitError, OSError, ValueError) as e:
            shutil.rmtree(clone_dir, ignore_errors=True)
            raise rnm.ScmError(f'failed to clone {parsed.location}') from e

        return GitRepositoryHandle(git_helper=git_helper, clone_dir=clone_dir)

    def close(self, handle: GitRepositoryHandle):
        handle.git_helper.repo.close()
        if handle.clone_dir:
            logger.debug(f'removing temporary clone {handle.clone_dir}')
            shutil.rmtree(handle.clone_dir, ignore_errors=True)

    def _commit(self, git_helper: gitutil.GitHelper, revision: rnm.Revision) -> git.Commit:
        match revision.kind:
            case rnm.RevisionKind.TAG:
                candidates = (f'refs/tags/{revision.name}',)
            case rnm.RevisionKind.BRANCH:
                candidates = (
                    f'refs/heads/{revision.name}',
                    f'refs/remotes/origin/{revision.name}',
                )
            case rnm.RevisionKind.REVISION:
                candidates = (revision.name,)
            case _:
                raise NotImplementedError(revision.kind)

        try:
            return git_helper.resolve_commit(*candidates)
        except ValueError as ve:
            raise rnm.ScmError(f'unknown {revision.kind} {revision.name!r}') from ve

    def change_log(
        self,
        handle: GitRepositoryHandle,
        file_scope: str,
        start: rnm.Revision,
        end: rnm.Revision,
    ) -> rnm.ChangeLog:
        git_helper = handle.git_helper

        start_commit = self._commit(git_helper, start)
        end_commit = self._commit(git_helper, end)

        paths = git_helper.path_in_working_tree(file_scope) if file_scope else None
        if paths == '.':
            paths = None
        elif paths is None and file_scope:
            logger.debug(f'{file_scope=} is not within work tree - considering all paths')

        logger.info(
            f'reading change-log {start} ({start_commit.hexsha}) .. {end} ({end_commit.hexsha})'
        )

        try:
            change_sets = tuple(
                _change_set(commit) for commit in git_helper.iter_commits_in_range(
                    start=start_commit,
                    end=end_commit,
                    paths=paths,
                    reverse=self.reverse,
                )
            )
        except git.exc.GitError as e:
            raise rnm.ScmError(f'failed to read change-log {start}..{end}') from e

        logger.info(f'found {len(change_sets)} change-set(s)')

        return rnm.ChangeLog(
            change_sets=change_sets,
            start=start,
            end=end,
        )


def _local_path(location: str) -> str | None:
    if location.startswith('file://'):
        return urllib.parse.unquote(urllib.parse.urlparse(location).path)
    if os.path.isdir(location):
        return location
    return None


def _change_set(commit: git.Commit) -> rnm.ChangeSet:
    message = commit.message
    if isinstance(message, bytes):
        message = message.decode('utf-8', errors='replace')

    return rnm.ChangeSet(
        comment=message,
        author=commit.author.name,
        timestamp=commit.committed_datetime,
        revision_id=commit.hexsha,
    )
