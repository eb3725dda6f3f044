"""Tests for building ModInfo records from a pack."""

from unittest.mock import Mock, patch

from modpack_editor.api import CurseProxyAPI
from modpack_editor.lookup import AddonLookup
from modpack_editor.modinfo import ModInfo, build_mod_infos, compute_dependants, refresh_mod_infos
from modpack_editor.pack import AdditionalFileEntry, ManifestEntry, Modpack
from modpack_editor.records import Dependency
from tests.conftest import make_addon, make_file, write_pack

FOO_URL = "https://minecraft.curseforge.com/projects/foo/files/20/download"


def populate(api):
    api.add(make_addon(1), make_file(10, deps=[(2, "RequiredDependency")]))
    api.add(make_addon(2), make_file(11))
    api.add(make_addon(3, slug="foo"), make_file(20, "foo-1.0.jar", deps=[(2, "OptionalDependency")]))


class TestBuildModInfos:
    def test_manifest_mods(self, api, lookup):
        populate(api)
        result = build_mod_infos(
            [ManifestEntry(1, 10), ManifestEntry(2, 11)], [2], [], lookup
        )

        mod = result.mods[1]
        assert mod.name == "Mod 1"
        assert mod.slug == "mod-1"
        assert mod.icon_url.endswith("/62/62/icon.png")
        assert mod.on_client is True
        assert mod.on_server is True
        assert mod.file_id == 10
        assert mod.dependencies == [Dependency(2, "RequiredDependency")]
        assert result.mods[2].on_server is False

    def test_additional_file_mods(self, api, lookup):
        populate(api)
        result = build_mod_infos(
            [], [], [AdditionalFileEntry(FOO_URL, "mods/foo-1.0.jar")], lookup
        )

        mod = result.mods[3]
        assert mod.slug == "foo"
        assert mod.on_client is False
        assert mod.on_server is True
        assert mod.file_id == 20

    def test_other_download_urls_ignored(self, api, lookup):
        result = build_mod_infos(
            [],
            [],
            [
                AdditionalFileEntry("https://example.com/custom.jar", "mods/custom.jar"),
                AdditionalFileEntry("https://minecraft.curseforge.com/projects/bad", "mods/bad.jar"),
            ],
            lookup,
        )
        assert result.mods == {}
        assert result.unresolved_slugs == []
        assert api.calls == []

    def test_failed_lookup_keeps_placement(self, api, lookup):
        populate(api)
        api.failing.add(("addon", 2))
        result = build_mod_infos(
            [ManifestEntry(1, 10), ManifestEntry(2, 11)], [2], [], lookup
        )

        failed = result.mods[2]
        assert "not found" in failed.error_message
        assert failed.name == ""
        assert failed.summary == ""
        assert failed.on_client is True
        assert failed.on_server is False
        assert failed.file_id == 11
        assert result.mods[1].name == "Mod 1"

    def test_failed_file_lookup_for_additional_file(self, api, lookup):
        populate(api)
        api.failing.add(("file", 20))
        result = build_mod_infos([], [], [AdditionalFileEntry(FOO_URL, "mods/foo.jar")], lookup)

        mod = result.mods[3]
        assert mod.error_message
        assert mod.slug == "foo"
        assert (mod.on_client, mod.on_server, mod.file_id) == (False, True, 20)

    def test_unresolved_slug_recorded(self, api, lookup):
        result = build_mod_infos(
            [],
            [],
            [AdditionalFileEntry("https://minecraft.curseforge.com/projects/gone/files/5/download", "mods/gone.jar")],
            lookup,
        )
        assert result.mods == {}
        assert result.unresolved_slugs == ["gone"]

    def test_dependants_computed_after_join(self, api, lookup):
        populate(api)
        result = build_mod_infos(
            [ManifestEntry(1, 10), ManifestEntry(2, 11)],
            [],
            [AdditionalFileEntry(FOO_URL, "mods/foo-1.0.jar")],
            lookup,
        )

        assert result.mods[2].dependants == [
            Dependency(1, "RequiredDependency"),
            Dependency(3, "OptionalDependency"),
        ]
        assert result.mods[1].dependants == []

    def test_single_worker(self, api, lookup):
        populate(api)
        result = build_mod_infos(
            [ManifestEntry(1, 10), ManifestEntry(2, 11)], [], [], lookup, max_workers=1
        )
        assert list(result.mods) == [1, 2]

    def test_many_mods_with_bounded_workers(self, api, lookup):
        for pid in range(1, 41):
            api.add(make_addon(pid), make_file(pid * 100))
        entries = [ManifestEntry(pid, pid * 100) for pid in range(1, 41)]

        result = build_mod_infos(entries, [], [], lookup, max_workers=4)

        assert list(result.mods) == list(range(1, 41))
        assert all(m.error_message == "" for m in result.mods.values())

    def test_malformed_response_marks_only_that_mod(self, cache):
        client = CurseProxyAPI()
        good_addon = make_addon(2, files=[make_file(20)]).to_dict()
        bad_addon = dict(make_addon(1).to_dict(), attachments=["oops"])

        def get(url, timeout=None):
            response = Mock(status_code=200, ok=True, url=url)
            if url.endswith("/addon/1"):
                response.json.return_value = bad_addon
            elif url.endswith("/addon/2"):
                response.json.return_value = good_addon
            else:
                response.json.return_value = make_file(20).to_dict()
            return response

        with patch.object(client.session, "get", side_effect=get):
            result = build_mod_infos(
                [ManifestEntry(1, 10), ManifestEntry(2, 20)], [], [], AddonLookup(cache, client)
            )

        assert "Malformed response" in result.mods[1].error_message
        assert result.mods[1].file_id == 10
        assert result.mods[2].name == "Mod 2"
        assert result.mods[2].error_message == ""

    def test_project_url_without_file_id_kept_as_unresolved(self, api, lookup):
        result = build_mod_infos(
            [],
            [],
            [
                AdditionalFileEntry("https://minecraft.curseforge.com/projects/foo/files/latest", "mods/foo.jar"),
                AdditionalFileEntry("https://minecraft.curseforge.com/projects/bar/download", "mods/bar.jar"),
            ],
            lookup,
        )
        assert result.mods == {}
        assert result.unresolved_slugs == ["foo", "bar"]
        assert api.calls == []

    def test_manifest_record_wins_over_additional_file(self, api, lookup):
        populate(api)
        api.add(make_addon(1), make_file(12))
        result = build_mod_infos(
            [ManifestEntry(1, 10)],
            [1],
            [AdditionalFileEntry("https://minecraft.curseforge.com/projects/mod-1/files/12/download", "mods/x.jar")],
            lookup,
        )

        mod = result.mods[1]
        assert (mod.on_client, mod.on_server, mod.file_id) == (True, False, 10)

    def test_failed_manifest_record_learns_slug_from_additional_file(self, api, lookup):
        populate(api)
        api.failing.add(("file", 10))
        result = build_mod_infos(
            [ManifestEntry(1, 10)],
            [],
            [AdditionalFileEntry("https://minecraft.curseforge.com/projects/mod-1/files/11/download", "mods/x.jar")],
            lookup,
        )

        assert result.mods[1].error_message
        assert result.mods[1].slug == "mod-1"
        assert result.mods[1].on_client is True


def test_compute_dependants_resets_previous_edges():
    mods = {
        1: ModInfo(dependencies=[Dependency(2, "RequiredDependency")]),
        2: ModInfo(dependants=[Dependency(99, "stale")]),
    }
    compute_dependants(mods)
    assert mods[2].dependants == [Dependency(1, "RequiredDependency")]


def test_mod_info_dict_round_trip():
    mod = ModInfo(
        name="JEI",
        slug="jei",
        on_client=True,
        on_server=False,
        file_id=10,
        dependencies=[Dependency(2, "RequiredDependency")],
    )
    data = mod.to_dict()
    assert data["OnServer"] is False
    assert data["ErrorMessage"] is None
    assert ModInfo.from_dict(data) == mod


def test_refresh_mod_infos_saves_cache_once(tmp_path, api, lookup, cache):
    populate(api)
    pack = Modpack.load(
        write_pack(tmp_path / "pack", files=[(1, 10), (2, 11)], additional=[(FOO_URL, "mods/foo-1.0.jar")])
    )

    with patch.object(cache, "save") as save:
        refresh_mod_infos(pack, lookup)

    save.assert_called_once_with()
    assert sorted(pack.mods) == [1, 2, 3]
    assert pack.unresolved_slugs == []
