import os

import git
import pytest

import gitutil
import release_notes.model as rnm
import release_notes.scm as examinee


def tag(name):
    return rnm.Revision(kind=rnm.RevisionKind.TAG, name=name)


def branch(name):
    return rnm.Revision(kind=rnm.RevisionKind.BRANCH, name=name)


def revision(name):
    return rnm.Revision(kind=rnm.RevisionKind.REVISION, name=name)


def comments(change_log: rnm.ChangeLog):
    return [change_set.comment for change_set in change_log]


@pytest.fixture
def adapter():
    return examinee.GitScmAdapter()


@pytest.fixture
def handle(adapter, tagged_repo):
    with examinee.opened_repository(
        scm_adapter=adapter,
        scm_url=f'scm:git:{tagged_repo.working_tree_dir}',
    ) as handle:
        yield handle


def test_parse_scm_url():
    assert examinee.parse_scm_url('scm:git:https://github.com/org/repo.git') == examinee.ScmUrl(
        provider='git',
        location='https://github.com/org/repo.git',
    )
    assert examinee.parse_scm_url('scm|git|git@github.com:org/repo.git') == examinee.ScmUrl(
        provider='git',
        location='git@github.com:org/repo.git',
    )
    assert examinee.parse_scm_url('scm:GIT:/some/path').provider == 'git'


@pytest.mark.parametrize('scm_url', [
    None,
    '',
    'scm',
    'scm:',
    'scm:git',
    'scm:git:',
    'git:https://github.com/org/repo.git',
    'scm/git/foo',
])
def test_parse_malformed_scm_url(scm_url):
    with pytest.raises(rnm.ScmError):
        examinee.parse_scm_url(scm_url)


def test_open_unsupported_provider(adapter):
    with pytest.raises(rnm.ScmError):
        adapter.open('scm:svn:https://svn.example.com/repo/trunk')


def test_open_non_existing_repository(adapter, tmpdir):
    with pytest.raises(rnm.ScmError):
        adapter.open(f'scm:git:file://{os.path.join(tmpdir, "does-not-exist")}')


def test_open_directory_that_is_no_repository(adapter, tmpdir):
    with pytest.raises(rnm.ScmError):
        adapter.open(f'scm:git:{tmpdir}')


def test_open_file_url(adapter, tagged_repo):
    handle = adapter.open(f'scm:git:file://{tagged_repo.working_tree_dir}')
    try:
        assert handle.clone_dir is None
        assert handle.git_helper.repo.head.commit == tagged_repo.head.commit
    finally:
        adapter.close(handle)


def test_change_log_between_tags(adapter, handle, tagged_repo):
    change_log = adapter.change_log(
        handle=handle,
        file_scope=tagged_repo.working_tree_dir,
        start=tag('v1.0.0'),
        end=tag('v1.1.0'),
    )

    assert comments(change_log) == [
        'add feature',
        'fix null check\n\nlong description',
        'document feature',
    ]
    assert change_log.start == tag('v1.0.0')
    assert change_log.end == tag('v1.1.0')

    change_set = change_log.change_sets[0]
    assert change_set.author == 'Jane Doe'
    assert change_set.timestamp is not None
    assert change_set.revision_id == tagged_repo.commit('HEAD~3').hexsha


def test_change_log_newest_first(handle, tagged_repo):
    adapter = examinee.GitScmAdapter(reverse=False)

    change_log = adapter.change_log(
        handle=handle,
        file_scope=tagged_repo.working_tree_dir,
        start=tag('v1.0.0'),
        end=tag('v1.1.0'),
    )

    assert comments(change_log) == [
        'document feature',
        'fix null check\n\nlong description',
        'add feature',
    ]


def test_change_log_for_branch_and_revision(adapter, handle, tagged_repo):
    change_log = adapter.change_log(
        handle=handle,
        file_scope=tagged_repo.working_tree_dir,
        start=revision(tagged_repo.commit('HEAD~3').hexsha),
        end=branch('release-1.1'),
    )

    assert comments(change_log) == [
        'fix null check\n\nlong description',
        'document feature',
    ]

    # abbreviated revisions are accepted, too
    change_log = adapter.change_log(
        handle=handle,
        file_scope=tagged_repo.working_tree_dir,
        start=branch('release-1.1'),
        end=revision(tagged_repo.head.commit.hexsha[:10]),
    )

    assert comments(change_log) == ['unreleased change']


def test_empty_change_log(adapter, handle, tagged_repo):
    change_log = adapter.change_log(
        handle=handle,
        file_scope=tagged_repo.working_tree_dir,
        start=tag('v1.1.0'),
        end=branch('release-1.1'),
    )

    assert not change_log
    assert comments(change_log) == []


def test_change_log_restricted_to_file_scope(adapter, handle, tagged_repo):
    change_log = adapter.change_log(
        handle=handle,
        file_scope=os.path.join(tagged_repo.working_tree_dir, 'docs'),
        start=tag('v1.0.0'),
        end=tag('v1.1.0'),
    )

    assert comments(change_log) == ['document feature']


def test_file_scope_outside_of_work_tree_is_ignored(adapter, handle, tagged_repo, tmpdir):
    other_dir = os.path.join(tmpdir, 'elsewhere')
    os.makedirs(other_dir)

    change_log = adapter.change_log(
        handle=handle,
        file_scope=other_dir,
        start=tag('v1.0.0'),
        end=tag('v1.1.0'),
    )

    assert len(change_log) == 3


@pytest.mark.parametrize('start,end', [
    (tag('v0.0.1'), tag('v1.1.0')),
    (tag('v1.0.0'), branch('no-such-branch')),
    (tag('v1.0.0'), revision('0' * 40)),
    (tag('v1.0.0'), revision('not-a-revision')),
    # branch-names are not resolved as tags and vice versa
    (branch('v1.0.0'), tag('v1.1.0')),
    (tag('v1.0.0'), tag('release-1.1')),
])
def test_unknown_revisions(adapter, handle, tagged_repo, start, end):
    with pytest.raises(rnm.ScmError):
        adapter.change_log(
            handle=handle,
            file_scope=tagged_repo.working_tree_dir,
            start=start,
            end=end,
        )


def test_remote_repository_is_cloned_and_removed(adapter, tagged_repo, monkeypatch):
    # treat local repository as remote one to avoid network access
    monkeypatch.setattr(examinee, '_local_path', lambda location: None)

    with examinee.opened_repository(
        scm_adapter=adapter,
        scm_url=f'scm:git:{tagged_repo.working_tree_dir}',
    ) as handle:
        clone_dir = handle.clone_dir
        assert os.path.isdir(clone_dir)

        change_log = adapter.change_log(
            handle=handle,
            file_scope=os.getcwd(),
            start=tag('v1.0.0'),
            # only available as remote branch in clone
            end=branch('release-1.1'),
        )

        assert len(change_log) == 3

    assert not os.path.exists(clone_dir)


def test_failed_clone(adapter, tmpdir, monkeypatch):
    monkeypatch.setattr(examinee, '_local_path', lambda location: None)

    with pytest.raises(rnm.ScmError):
        adapter.open(f'scm:git:{os.path.join(tmpdir, "no-such-repo")}')


def test_opened_repository_closes_handle_on_error():
    class Adapter(examinee.ScmAdapter):
        closed = False

        def open(self, scm_url):
            return 'handle'

        def change_log(self, handle, file_scope, start, end):
            raise rnm.ScmError('boom')

        def close(self, handle):
            assert handle == 'handle'
            self.closed = True

    adapter = Adapter()

    with pytest.raises(rnm.ScmError):
        with examinee.opened_repository(adapter, 'scm:fake:x') as handle:
            adapter.change_log(handle, '.', tag('a'), tag('b'))

    assert adapter.closed


@pytest.mark.parametrize('location, expected_auth_type', [
    ('git@github.com:org/repo.git', gitutil.AuthType.PRESET),
    ('ssh://git@github.com/org/repo.git', gitutil.AuthType.PRESET),
    ('https://github.com/org/repo.git', gitutil.AuthType.HTTP_TOKEN),
])
def test_token_only_passed_to_http_locations(location, expected_auth_type, monkeypatch):
    cloned_with = []

    def clone_into(target_directory, git_cfg):
        cloned_with.append(git_cfg)
        raise git.exc.GitCommandError('clone', 128)

    monkeypatch.setattr(examinee, '_local_path', lambda location: None)
    monkeypatch.setattr(gitutil.GitHelper, 'clone_into', staticmethod(clone_into))

    adapter = examinee.GitScmAdapter(
        git_cfg=gitutil.GitCfg(
            auth=('x-access-token', 'SECRET'),
            auth_type=gitutil.AuthType.HTTP_TOKEN,
        ),
    )

    with pytest.raises(rnm.ScmError):
        adapter.open(f'scm|git|{location}')

    git_cfg, = cloned_with
    assert git_cfg.repo_url == location
    assert git_cfg.auth_type is expected_auth_type
    if expected_auth_type is gitutil.AuthType.PRESET:
        assert git_cfg.auth is None
