"""
modhatch.templates - Project Template Files
===========================================

Package data read through :class:`modhatch.renderer.PackageTemplateStore`.
Files ending in ``.j2`` are rendered with Jinja2; everything else
(``gradlew``, ``icon.png``, the Gradle build scripts) is copied verbatim.
Which template lands where is decided by :mod:`modhatch.plan`.
"""
