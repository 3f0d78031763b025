# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
Release Note Generator

Generates a plain-text release note from the commits between two revisions of a repository.

Revisions are passed as (kind, identifier)-pairs, where kind is one of `tag`, `branch` or
`revision` (see `release_notes.revision`). The change-log between both revisions is read via an
SCM adapter (see `release_notes.scm`; git is supported out of the box). Each commit message is
reduced to a single, width-bounded line (see `release_notes.summary`) and written to the output
file (see `release_notes.writer`):

    Release note for v1.2.1:
      fix null check
      refactor parser

If there are no commits, a single `Nothing to say..` line is written instead.
'''
