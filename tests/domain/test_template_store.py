"""Tests for domain types in template_store."""

from __future__ import annotations

import dataclasses

import pytest

from src.domain.template_store import (
    ObjectKind,
    StoreObject,
    TemplateLoaderConfig,
    TemplateLoaderConfigError,
    split_folder_path,
)


class TestSplitFolderPath:
    @pytest.mark.parametrize(
        ('raw', 'expected'),
        [
            ('templates', ['templates']),
            ('templates/email', ['templates', 'email']),
            ('/templates/email/', ['templates', 'email']),
            ('templates//email', ['templates', 'email']),
        ],
    )
    def test_segments(self, raw, expected):
        assert split_folder_path(raw) == expected

    @pytest.mark.parametrize('raw', ['', '/', '///'])
    def test_empty_path_rejected(self, raw):
        with pytest.raises(TemplateLoaderConfigError):
            split_folder_path(raw)


class TestTemplateLoaderConfig:
    def test_defaults(self):
        config = TemplateLoaderConfig(template_folder_path='/templates/email')

        assert config.create_site is False
        assert config.create_folder is False
        assert config.default_template_name == 'view.ftl'
        assert config.folder_segments == ['templates', 'email']

    def test_empty_folder_path_rejected(self):
        with pytest.raises(TemplateLoaderConfigError):
            TemplateLoaderConfig(template_folder_path='/')

    @pytest.mark.parametrize('flags', [{'create_folder': True}, {'create_site': True, 'site_name': 'Templates'}])
    def test_create_flags_require_default_template(self, flags):
        with pytest.raises(TemplateLoaderConfigError):
            TemplateLoaderConfig(template_folder_path='templates', **flags)

    def test_create_site_requires_site_name(self):
        with pytest.raises(TemplateLoaderConfigError):
            TemplateLoaderConfig(template_folder_path='templates', create_site=True, default_template=b'x')

    def test_config_is_immutable(self):
        config = TemplateLoaderConfig(template_folder_path='templates')

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.create_folder = True


class TestStoreObject:
    def test_kind_properties(self):
        folder = StoreObject(id='1', name='f', kind=ObjectKind.FOLDER, last_modified=0, site_id='s')
        doc = StoreObject(id='2', name='d', kind=ObjectKind.DOCUMENT, last_modified=0, site_id='s')

        assert folder.is_folder and not folder.is_document
        assert doc.is_document and not doc.is_folder
