# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import release_notes.cli


if __name__ == '__main__':
    release_notes.cli.main()
