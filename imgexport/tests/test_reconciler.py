"""
Tests for Reconciler.
"""

import os

from imgexport.reconciler import Reconciler, find_image_files, find_output_folders


def touch(path):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(b'x')
    return path


class TestHelpers:
    """Tests for folder and file discovery."""

    def test_find_output_folders(self, tmp_path):
        """Test nested output folders are found."""
        (tmp_path / 'opt').mkdir()
        (tmp_path / 'blog' / 'opt').mkdir(parents=True)
        (tmp_path / 'other').mkdir()

        folders = find_output_folders(str(tmp_path), 'opt')

        assert sorted(folders) == sorted([
            str(tmp_path / 'opt'),
            str(tmp_path / 'blog' / 'opt'),
        ])

    def test_find_image_files(self, tmp_path):
        """Test only image files are listed, extension case-insensitive."""
        touch(str(tmp_path / 'a-opt-16.WEBP'))
        touch(str(tmp_path / 'a-opt-16.webp.tmp'))
        touch(str(tmp_path / 'b-opt-16.png'))

        files = find_image_files(str(tmp_path))

        assert sorted(os.path.basename(f) for f in files) == ['a-opt-16.WEBP', 'b-opt-16.png']

    def test_missing_folder(self, tmp_path):
        """Test a missing folder yields nothing."""
        assert find_image_files(str(tmp_path / 'nope')) == []
        assert find_output_folders(str(tmp_path / 'nope'), 'opt') == []


class TestReconciler:
    """Tests for Reconciler."""

    def test_orphans_deleted(self, config):
        """Test files not kept are deleted and kept files survive."""
        folder = os.path.join(config.image_folder_path, config.export_folder_name)
        kept = touch(os.path.join(folder, 'a-opt-16.WEBP'))
        orphan = touch(os.path.join(folder, 'old-opt-16.WEBP'))

        deleted = Reconciler(config).reconcile([kept])

        assert deleted == [orphan]
        assert os.path.exists(kept)
        assert not os.path.exists(orphan)

    def test_public_folder_included(self, config):
        """Test the top-level public output folder is reconciled."""
        orphan = touch(os.path.join(
            config.public_folder_path, config.export_folder_name, 'hero-opt-640.WEBP'
        ))

        assert Reconciler(config).reconcile([]) == [orphan]

    def test_nested_folders(self, config):
        """Test output folders in subdirectories are reconciled."""
        orphan = touch(os.path.join(
            config.image_folder_path, 'blog', config.export_folder_name, 'b-opt-16.WEBP'
        ))

        assert Reconciler(config).reconcile([]) == [orphan]

    def test_dry_run(self, config):
        """Test dry run reports but deletes nothing."""
        orphan = touch(os.path.join(
            config.image_folder_path, config.export_folder_name, 'old-opt-16.WEBP'
        ))

        assert Reconciler(config).reconcile([], dry_run=True) == [orphan]
        assert os.path.exists(orphan)

    def test_sources_untouched(self, config):
        """Test files outside output folders are never deleted."""
        source = touch(os.path.join(config.image_folder_path, 'a.jpg'))

        assert Reconciler(config).reconcile([]) == []
        assert os.path.exists(source)

    def test_relative_keep_paths(self, config, monkeypatch):
        """Test keep paths are compared as absolute paths."""
        monkeypatch.chdir(config.project_dir)
        kept = touch(os.path.join(
            config.image_folder_path, config.export_folder_name, 'a-opt-16.WEBP'
        ))

        assert Reconciler(config).reconcile([os.path.relpath(kept)]) == []
