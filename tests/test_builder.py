"""End-to-end tests of webapp assembly and packaging."""

import zipfile
from pathlib import Path

import pytest

from conftest import read_tree, write_files

from config.settings import WarSettings
from model.overlay import CURRENT_BUILD, Overlay
from model.project import Artifact, Resource
from webapp.builder import WarBuilder
from webapp.errors import MissingWebXmlError, OverlayConfigurationError, PackagingError


class TestOverlayPrecedence:
    """Test which source wins a path contributed several times."""

    def test_first_configured_overlay_wins(self, make_project, artifact_factory, webapp_dir, project_dir):
        (project_dir / "src" / "main" / "webapp" / "index.jsp").unlink()
        overlay_a = artifact_factory("a", {"index.jsp": "from a", "a.jsp": "a"})
        overlay_b = artifact_factory("b", {"index.jsp": "from b", "b.jsp": "b"})
        project = make_project([overlay_a, overlay_b])
        settings = WarSettings(
            overlays=[
                Overlay(group_id="com.example", artifact_id="b"),
                Overlay(group_id="com.example", artifact_id="a"),
            ]
        )

        report = WarBuilder(project, settings).build_exploded_webapp()

        assert (webapp_dir / "index.jsp").read_text() == "from b"
        assert (webapp_dir / "a.jsp").read_text() == "a"
        assert (webapp_dir / "b.jsp").read_text() == "b"
        assert report.overlays == [CURRENT_BUILD, "com.example:b", "com.example:a"]
        assert report.owners["com.example:b"] == 2

    def test_implicit_overlays_follow_dependency_order(self, make_project, artifact_factory, webapp_dir, project_dir):
        (project_dir / "src" / "main" / "webapp" / "index.jsp").unlink()
        project = make_project(
            [
                artifact_factory("a", {"index.jsp": "from a"}),
                artifact_factory("b", {"index.jsp": "from b"}),
            ]
        )
        WarBuilder(project).build_exploded_webapp()
        assert (webapp_dir / "index.jsp").read_text() == "from a"

    def test_current_project_wins(self, make_project, artifact_factory, webapp_dir):
        """Project content replaces overlay content even when the project is configured last."""
        project = make_project([artifact_factory("a", {"index.jsp": "from a"})])
        settings = WarSettings(overlays=[Overlay(group_id="com.example", artifact_id="a"), Overlay()])

        WarBuilder(project, settings).build_exploded_webapp()

        assert (webapp_dir / "index.jsp").read_text() == "project index"

    def test_web_resources_win_over_webapp_sources(self, make_project, project_dir, webapp_dir):
        write_files(project_dir / "src" / "main" / "extra", {"index.jsp": "resource index"})
        settings = WarSettings(web_resources=[Resource(directory=Path("src/main/extra"))])

        WarBuilder(make_project(), settings).build_exploded_webapp()

        assert (webapp_dir / "index.jsp").read_text() == "resource index"

    def test_overlay_manifest_excluded_by_default(self, make_project, artifact_factory, webapp_dir):
        project = make_project([artifact_factory("a", {"META-INF/MANIFEST.MF": "overlay manifest"})])
        settings = WarSettings(overlays=[Overlay(group_id="com.example", artifact_id="a")])
        WarBuilder(project, settings).build_exploded_webapp()
        assert not (webapp_dir / "META-INF" / "MANIFEST.MF").exists()

    def test_implicit_overlay_manifest_not_packaged(self, make_project, artifact_factory, project_dir):
        project = make_project(
            [artifact_factory("a", {"META-INF/MANIFEST.MF": "Overlay-Manifest: yes\r\n", "a.jsp": "a"})]
        )

        report = WarBuilder(project).package()

        with zipfile.ZipFile(report.archive) as zf:
            manifest = zf.read("META-INF/MANIFEST.MF").decode("utf-8")
            assert "a.jsp" in zf.namelist()
        assert "Overlay-Manifest" not in manifest
        assert "Manifest-Version: 1.0" in manifest

    def test_dependent_war_patterns(self, make_project, artifact_factory, webapp_dir):
        project = make_project([artifact_factory("a", {"META-INF/context.xml": "<Context/>", "a.jsp": "a"})])
        settings = WarSettings(dependent_war_includes="META-INF/**", dependent_war_excludes="")

        WarBuilder(project, settings).build_exploded_webapp()

        assert (webapp_dir / "META-INF" / "context.xml").is_file()
        assert not (webapp_dir / "a.jsp").exists()


class TestOverlayOptions:
    """Test per-overlay configuration."""

    def test_target_path_and_patterns(self, make_project, artifact_factory, webapp_dir):
        project = make_project([artifact_factory("a", {"css/a.css": "a", "js/a.js": "a"})])
        overlay = Overlay(group_id="com.example", artifact_id="a", includes="css/**", target_path="static")
        WarBuilder(project, WarSettings(overlays=[overlay])).build_exploded_webapp()
        assert (webapp_dir / "static" / "css" / "a.css").is_file()
        assert not (webapp_dir / "static" / "js").exists()
        assert not (webapp_dir / "js").exists()

    def test_skip(self, make_project, artifact_factory, webapp_dir):
        project = make_project([artifact_factory("a", {"a.jsp": "a"})])
        overlay = Overlay(group_id="com.example", artifact_id="a", skip=True)
        report = WarBuilder(project, WarSettings(overlays=[overlay])).build_exploded_webapp()
        assert not (webapp_dir / "a.jsp").exists()
        assert report.tasks[-1].metadata["skipped_overlay"] is True

    def test_filtered_overlay(self, make_project, artifact_factory, webapp_dir):
        project = make_project([artifact_factory("a", {"about.txt": "version ${project.version}"})])
        overlay = Overlay(group_id="com.example", artifact_id="a", filtered=True)
        WarBuilder(project, WarSettings(overlays=[overlay])).build_exploded_webapp()
        assert (webapp_dir / "about.txt").read_text() == "version 1.0"

    def test_zip_overlay(self, make_project, artifact_factory, webapp_dir):
        project = make_project([artifact_factory("theme", {"theme/main.css": "body{}"}, type="zip")])
        WarBuilder(project).build_exploded_webapp()
        assert (webapp_dir / "theme" / "main.css").read_text() == "body{}"

    def test_missing_archive(self, make_project, artifact_factory):
        artifact = artifact_factory("a")
        artifact.file.unlink()
        with pytest.raises(PackagingError) as info:
            WarBuilder(make_project([artifact])).build_exploded_webapp()
        assert info.value.error_code == "ARTIFACT_FILE_MISSING"
        assert info.value.owner_id == "com.example:a"
        assert info.value.task_name == "overlay"

    def test_archive_that_cannot_be_unpacked(self, make_project, repository, project_dir):
        archive = repository / "odd-1.0.txt"
        archive.write_text("not an archive")
        artifact = Artifact(group_id="com.example", artifact_id="odd", version="1.0", type="war", file=archive)

        with pytest.raises(PackagingError) as info:
            WarBuilder(make_project([artifact])).build_exploded_webapp()

        assert info.value.error_code == "UNPACK_FAILED"
        assert info.value.owner_id == "com.example:odd"
        assert not (project_dir / "target" / "war" / "work" / "com.example-odd").exists()


class TestLibraries:
    """Test library dependencies."""

    def test_jar_copied_to_lib(self, make_project, artifact_factory, webapp_dir):
        lib = artifact_factory("lib", type="jar")
        provided = artifact_factory("api", type="jar", scope="provided")
        WarBuilder(make_project([lib, provided])).build_exploded_webapp()
        assert (webapp_dir / "WEB-INF" / "lib" / "lib-1.0.jar").read_bytes() == lib.file.read_bytes()
        assert not (webapp_dir / "WEB-INF" / "lib" / "api-1.0.jar").exists()

    def test_tld_directory(self, make_project, artifact_factory, webapp_dir):
        WarBuilder(make_project([artifact_factory("tags", type="tld")])).build_exploded_webapp()
        assert (webapp_dir / "WEB-INF" / "tld" / "tags-1.0.tld").is_file()

    def test_output_file_name_mapping(self, make_project, artifact_factory, webapp_dir):
        lib = artifact_factory("lib", type="jar", classifier="jdk8")
        settings = WarSettings(output_file_name_mapping="@{groupId}@-@{artifactId}@@{dashClassifier?}@.@{extension}@")
        WarBuilder(make_project([lib]), settings).build_exploded_webapp()
        assert (webapp_dir / "WEB-INF" / "lib" / "com.example-lib-jdk8.jar").is_file()

    def test_duplicate_file_names_prefixed(self, make_project, artifact_factory, archive_factory, webapp_dir):
        first = artifact_factory("util", type="jar")
        second = first.model_copy(update={"group_id": "org.other", "file": archive_factory("other.jar", {"x": "y"})})
        WarBuilder(make_project([first, second])).build_exploded_webapp()
        lib_dir = webapp_dir / "WEB-INF" / "lib"
        assert (lib_dir / "com.example-util-1.0.jar").is_file()
        assert (lib_dir / "org.other-util-1.0.jar").is_file()


class TestProjectContent:
    """Test the current project's content."""

    def test_filtered_web_resources(self, make_project, project_dir, webapp_dir):
        write_files(
            project_dir / "src" / "main" / "extra",
            {"about.txt": "version ${project.version} by @owner@", "logo.png": "${project.version}"},
        )
        project = make_project(properties={"owner": "shop-team"})
        settings = WarSettings(
            web_resources=[Resource(directory=Path("src/main/extra"), filtering=True, target_path="info")]
        )

        WarBuilder(project, settings).build_exploded_webapp()

        assert (webapp_dir / "info" / "about.txt").read_text() == "version 1.0 by shop-team"
        assert (webapp_dir / "info" / "logo.png").read_text() == "${project.version}"

    def test_unfiltered_web_resources(self, make_project, project_dir, webapp_dir):
        write_files(project_dir / "src" / "main" / "extra", {"about.txt": "version ${project.version}"})
        settings = WarSettings(web_resources=[Resource(directory=Path("src/main/extra"), target_path=".")])
        WarBuilder(make_project(), settings).build_exploded_webapp()
        assert (webapp_dir / "about.txt").read_text() == "version ${project.version}"

    def test_filter_files(self, make_project, project_dir, webapp_dir):
        write_files(project_dir, {"filter.properties": "greeting=hello", "src/main/extra/a.txt": "${greeting}"})
        project = make_project(filters=[Path("filter.properties")])
        settings = WarSettings(web_resources=[Resource(directory=Path("src/main/extra"), filtering=True)])
        WarBuilder(project, settings).build_exploded_webapp()
        assert (webapp_dir / "a.txt").read_text() == "hello"

    def test_configured_web_xml(self, make_project, project_dir, webapp_dir, artifact_factory):
        write_files(project_dir, {"conf/custom-web.xml": "<web-app id='custom'/>"})
        project = make_project([artifact_factory("a", {"WEB-INF/web.xml": "<web-app id='overlay'/>"})])
        settings = WarSettings(webxml=Path("conf/custom-web.xml"))

        report = WarBuilder(project, settings).build_exploded_webapp()

        assert (webapp_dir / "WEB-INF" / "web.xml").read_text() == "<web-app id='custom'/>"
        assert report.owners[CURRENT_BUILD] >= 1

    def test_configured_web_xml_missing(self, make_project):
        settings = WarSettings(webxml=Path("conf/missing.xml"))
        with pytest.raises(PackagingError, match="does not exist"):
            WarBuilder(make_project(), settings).build_exploded_webapp()

    def test_filtered_deployment_descriptor(self, make_project, project_dir, webapp_dir):
        write_files(
            project_dir / "src" / "main" / "webapp",
            {"WEB-INF/web.xml": '<?xml version="1.0" encoding="UTF-8"?>\n<web-app version="${project.version}"/>'},
        )
        settings = WarSettings(filtering_deployment_descriptors=True)
        WarBuilder(make_project(), settings).build_exploded_webapp()
        assert 'version="1.0"' in (webapp_dir / "WEB-INF" / "web.xml").read_text()

    def test_container_config(self, make_project, project_dir, webapp_dir):
        write_files(project_dir, {"conf/context.xml": "<Context/>"})
        settings = WarSettings(container_config_xml=Path("conf/context.xml"))
        WarBuilder(make_project(), settings).build_exploded_webapp()
        assert (webapp_dir / "META-INF" / "context.xml").read_text() == "<Context/>"

    def test_classes(self, make_project, project_dir, webapp_dir):
        write_files(project_dir / "target" / "classes", {"com/example/App.class": b"\xca\xfe\xba\xbe"})
        WarBuilder(make_project()).build_exploded_webapp()
        assert (webapp_dir / "WEB-INF" / "classes" / "com" / "example" / "App.class").is_file()

    def test_archive_classes(self, make_project, project_dir, webapp_dir):
        write_files(project_dir / "target" / "classes", {"com/example/App.class": b"\xca\xfe\xba\xbe"})
        WarBuilder(make_project(), WarSettings(archive_classes=True)).build_exploded_webapp()
        jar = webapp_dir / "WEB-INF" / "lib" / "shop-1.0.jar"
        with zipfile.ZipFile(jar) as zf:
            assert "com/example/App.class" in zf.namelist()
        assert not (webapp_dir / "WEB-INF" / "classes" / "com").exists()

    def test_source_excludes(self, make_project, project_dir, webapp_dir):
        write_files(project_dir / "src" / "main" / "webapp", {"draft.jsp": "draft"})
        settings = WarSettings(war_source_excludes="draft.jsp")
        WarBuilder(make_project(), settings).build_exploded_webapp()
        assert not (webapp_dir / "draft.jsp").exists()
        assert (webapp_dir / "index.jsp").exists()


class TestRunSemantics:
    """Test whole-run properties."""

    def test_rebuild_is_idempotent(self, make_project, artifact_factory, webapp_dir, project_dir):
        write_files(project_dir / "target" / "classes", {"App.class": b"\x00\x01"})
        project = make_project(
            [
                artifact_factory("a", {"index.jsp": "from a", "a/page.jsp": "a"}),
                artifact_factory("lib", type="jar"),
            ]
        )
        settings = WarSettings(web_resources=[Resource(directory=Path("src/main/webapp"), filtering=True)])

        WarBuilder(project, settings).build_exploded_webapp()
        first = read_tree(webapp_dir)
        WarBuilder(project, settings).build_exploded_webapp()
        second = read_tree(webapp_dir)

        assert first == second
        assert first["index.jsp"] == b"project index"
        assert "a/page.jsp" in first

    def test_configuration_error_writes_nothing(self, make_project, artifact_factory, webapp_dir):
        project = make_project([artifact_factory("a"), artifact_factory("b")])
        settings = WarSettings(
            overlays=[
                Overlay(id="dup", group_id="com.example", artifact_id="a"),
                Overlay(id="dup", group_id="com.example", artifact_id="b"),
            ]
        )
        with pytest.raises(OverlayConfigurationError):
            WarBuilder(project, settings).build_exploded_webapp()
        assert not webapp_dir.exists()

    def test_user_manifest_copied(self, make_project, project_dir, webapp_dir):
        write_files(project_dir / "src" / "main" / "webapp", {"META-INF/MANIFEST.MF": "Manifest-Version: 1.0\n"})
        WarBuilder(make_project()).build_exploded_webapp()
        assert (webapp_dir / "META-INF" / "MANIFEST.MF").read_text() == "Manifest-Version: 1.0\n"


class TestIncrementalBuild:
    """Test runs reusing the structure cache."""

    def test_cache_written(self, make_project, artifact_factory, project_dir):
        WarBuilder(make_project([artifact_factory("lib", type="jar")]), WarSettings(use_cache=True)).build_exploded_webapp()
        cache_file = project_dir / "target" / "war" / "work" / "webapp-cache.xml"
        assert cache_file.is_file()
        assert "lib-1.0.jar" in cache_file.read_text()

    def test_cache_not_written_without_use_cache(self, make_project, project_dir):
        WarBuilder(make_project()).build_exploded_webapp()
        assert not (project_dir / "target" / "war" / "work" / "webapp-cache.xml").exists()

    def test_second_run_uses_cache(self, make_project, artifact_factory):
        project = make_project([artifact_factory("lib", type="jar")])
        settings = WarSettings(use_cache=True)
        assert WarBuilder(project, settings).build_exploded_webapp().cache_used is False
        assert WarBuilder(project, settings).build_exploded_webapp().cache_used is True

    def test_updated_library_replaced(self, make_project, artifact_factory, webapp_dir):
        settings = WarSettings(use_cache=True)
        WarBuilder(make_project([artifact_factory("lib", type="jar")]), settings).build_exploded_webapp()
        assert (webapp_dir / "WEB-INF" / "lib" / "lib-1.0.jar").is_file()

        report = WarBuilder(
            make_project([artifact_factory("lib", type="jar", version="2.0")]), settings
        ).build_exploded_webapp()

        assert not (webapp_dir / "WEB-INF" / "lib" / "lib-1.0.jar").exists()
        assert (webapp_dir / "WEB-INF" / "lib" / "lib-2.0.jar").is_file()
        analysis = next(task for task in report.tasks if task.task == "dependencies-analysis")
        assert analysis.removed == 1

    def test_removed_library_deleted(self, make_project, artifact_factory, webapp_dir):
        settings = WarSettings(use_cache=True)
        project = make_project([artifact_factory("lib", type="jar"), artifact_factory("keep", type="jar")])
        WarBuilder(project, settings).build_exploded_webapp()

        WarBuilder(make_project([artifact_factory("keep", type="jar")]), settings).build_exploded_webapp()

        assert not (webapp_dir / "WEB-INF" / "lib" / "lib-1.0.jar").exists()
        assert (webapp_dir / "WEB-INF" / "lib" / "keep-1.0.jar").is_file()

    def test_library_moved_to_provided_deleted(self, make_project, artifact_factory, webapp_dir):
        settings = WarSettings(use_cache=True)
        WarBuilder(make_project([artifact_factory("lib", type="jar")]), settings).build_exploded_webapp()
        WarBuilder(make_project([artifact_factory("lib", type="jar", scope="provided")]), settings).build_exploded_webapp()
        assert not (webapp_dir / "WEB-INF" / "lib" / "lib-1.0.jar").exists()

    def test_removed_overlay_files_deleted(self, make_project, artifact_factory, webapp_dir):
        settings = WarSettings(use_cache=True)
        WarBuilder(make_project([artifact_factory("a", {"a-only.jsp": "a"})]), settings).build_exploded_webapp()
        assert (webapp_dir / "a-only.jsp").is_file()

        report = WarBuilder(make_project(), settings).build_exploded_webapp()

        assert not (webapp_dir / "a-only.jsp").exists()
        assert (webapp_dir / "index.jsp").is_file()
        assert "com.example:a" not in report.owners
        analysis = next(task for task in report.tasks if task.task == "dependencies-analysis")
        assert analysis.removed == 1

    def test_removed_overlay_keeps_files_of_others(self, make_project, artifact_factory, webapp_dir):
        settings = WarSettings(use_cache=True)
        keep = artifact_factory("b", {"b.jsp": "b"})
        WarBuilder(
            make_project([artifact_factory("a", {"a-only.jsp": "a", "b.jsp": "from a"}), keep]), settings
        ).build_exploded_webapp()
        assert (webapp_dir / "b.jsp").read_text() == "from a"

        WarBuilder(make_project([keep]), settings).build_exploded_webapp()

        assert not (webapp_dir / "a-only.jsp").exists()
        assert (webapp_dir / "b.jsp").read_text() == "b"

    def test_stale_cache_file_ignored(self, make_project, project_dir, webapp_dir):
        write_files(project_dir / "target" / "war" / "work", {"webapp-cache.xml": "garbage"})
        report = WarBuilder(make_project(), WarSettings(use_cache=True)).build_exploded_webapp()
        assert report.cache_used is False
        assert (webapp_dir / "index.jsp").is_file()


class TestPackage:
    """Test archive creation."""

    def test_war_created(self, make_project, project_dir):
        report = WarBuilder(make_project()).package()
        assert report.archive == project_dir / "target" / "shop-1.0.war"
        with zipfile.ZipFile(report.archive) as zf:
            assert "index.jsp" in zf.namelist()
            assert "WEB-INF/web.xml" in zf.namelist()

    def test_classifier(self, make_project, project_dir):
        report = WarBuilder(make_project(), WarSettings(classifier="dev")).package()
        assert report.archive.name == "shop-1.0-dev.war"

    def test_packaging_excludes(self, make_project, project_dir):
        write_files(project_dir / "src" / "main" / "webapp", {"WEB-INF/notes.txt": "internal"})
        report = WarBuilder(make_project(), WarSettings(packaging_excludes="WEB-INF/*.txt")).package()
        with zipfile.ZipFile(report.archive) as zf:
            assert "WEB-INF/notes.txt" not in zf.namelist()

    def test_missing_web_xml_fails(self, make_project, project_dir):
        (project_dir / "src" / "main" / "webapp" / "WEB-INF" / "web.xml").unlink()
        builder = WarBuilder(make_project())
        with pytest.raises(MissingWebXmlError):
            builder.package()
        # the exploded webapp is still assembled, the archive is not written
        assert (project_dir / "target" / "shop-1.0" / "index.jsp").is_file()
        assert not (project_dir / "target" / "shop-1.0.war").exists()

    def test_missing_web_xml_allowed(self, make_project, project_dir):
        (project_dir / "src" / "main" / "webapp" / "WEB-INF" / "web.xml").unlink()
        report = WarBuilder(make_project(), WarSettings(fail_on_missing_web_xml=False)).package()
        assert report.archive.is_file()

    def test_web_xml_from_overlay(self, make_project, project_dir, artifact_factory):
        """A fragment without web.xml packages fine when an overlay supplies one."""
        (project_dir / "src" / "main" / "webapp" / "WEB-INF" / "web.xml").unlink()
        project = make_project([artifact_factory("base", {"WEB-INF/web.xml": "<web-app/>"})])
        report = WarBuilder(project).package()
        with zipfile.ZipFile(report.archive) as zf:
            assert zf.read("WEB-INF/web.xml") == b"<web-app/>"

    def test_skip(self, make_project, project_dir):
        report = WarBuilder(make_project(), WarSettings(skip=True)).package()
        assert report.skipped is True
        assert report.archive is None
        assert not (project_dir / "target").exists()
