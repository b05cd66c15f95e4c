#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_vlc.py
# vlcbuild
#
# Copyright 2024 vlcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Build VLC and a fully static libVLC for one Apple target.

Steps, each aborting the build on failure:
1. extras tools (bootstrap, make)
2. contribs (bootstrap, make list, make) into <build>/contrib/<triplet>
3. VLC (bootstrap, configure, make, make install) into <build>/vlc-<triplet>
4. removal of unwanted plugins from the install tree
5. static module list and link of libvlc-full-static.a

Usage:
    vlcbuild build --arch=arm64 --sdk=iphoneos
    vlcbuild link --arch=arm64 --sdk=iphoneos   # steps 4 and 5 only
"""

import multiprocessing
import os
import time

try:
    from vlcbuild.build_scripts.build_apple import (
        CONTRIB_EXTRA_CFLAGS,
        VLC_EXTRA_CFLAGS,
        BuildPaths,
        build_step_environment,
        find_apple_libtool,
        get_host_triplet,
        make_toolchain,
        print_build_configuration,
        resolve_target,
    )
    from vlcbuild.build_scripts.errors import StageError
    from vlcbuild.build_scripts.static_link import LinkSetAssembler, link_static_library
    from vlcbuild.build_scripts.symbol_reader import get_symbol_reader
    from vlcbuild.utils.cmd.cmd_util import TIMEOUT_CODE, run_streaming
except ImportError:
    from build_apple import (
        CONTRIB_EXTRA_CFLAGS,
        VLC_EXTRA_CFLAGS,
        BuildPaths,
        build_step_environment,
        find_apple_libtool,
        get_host_triplet,
        make_toolchain,
        print_build_configuration,
        resolve_target,
    )
    from errors import StageError
    from static_link import LinkSetAssembler, link_static_library
    from symbol_reader import get_symbol_reader
    from utils.cmd.cmd_util import TIMEOUT_CODE, run_streaming


def plugin_archive_name(module_name):
    return f"lib{module_name}_plugin.a"


def remove_modules(plugins_dir, module_names):
    """
    Delete the plugin archives of the given modules anywhere below plugins_dir.

    Returns:
        list: removed paths
    """
    wanted = {plugin_archive_name(name) for name in module_names}
    removed = []
    if not wanted or not os.path.isdir(plugins_dir):
        return removed
    for dirpath, dirnames, filenames in os.walk(plugins_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            path = os.path.join(dirpath, filename)
            if filename in wanted and os.path.isfile(path) and not os.path.islink(path):
                os.remove(path)
                removed.append(path)
    return removed


class StageRunner:
    """
    Runs external build steps one after the other.

    Output of the steps goes straight to the console. A failing or
    timed out step raises StageError.
    """

    def __init__(self, jobs=None, make=None, timeout_second=3 * 3600, runner=run_streaming):
        if jobs is None or jobs <= 0:
            jobs = multiprocessing.cpu_count()
        self.jobs = jobs
        self.make = make or os.environ.get("MAKE") or "make"
        self.timeout_second = timeout_second
        self.runner = runner

    def make_command(self, *targets):
        cmd = self.make.split() + [f"-j{self.jobs}"]
        cmd.extend(targets)
        return cmd

    def run(self, stage, description, command, cwd, env=None):
        print(f"[{stage}] {' '.join(str(x) for x in command)}")
        err_code = self.runner(
            command, cwd=cwd, env=env, timeout_second=self.timeout_second
        )
        if err_code == TIMEOUT_CODE:
            raise StageError(
                f"{description} timed out after {self.timeout_second}s",
                stage=stage,
                path=cwd,
            )
        if err_code != 0:
            raise StageError(
                f"{description} failed (exit {err_code})", stage=stage, path=cwd
            )


def build_tools(runner, paths, env):
    print("==================Building needed tools (if missing)========================")
    runner.run("tools", "Bootstrapping tools", ["./bootstrap"], paths.tools_dir, env)
    runner.run("tools", "Building tools", runner.make_command(), paths.tools_dir, env)
    print("")


def build_contribs(runner, paths, toolchain, host_triplet, options):
    print(f"==================Building contribs for {toolchain.target.arch}========================")
    os.makedirs(paths.contrib_build_dir, exist_ok=True)
    os.makedirs(paths.contrib_install_dir, exist_ok=True)
    env = toolchain.environ()
    bootstrap = [
        "../bootstrap",
        f"--host={host_triplet}",
        f"--prefix={paths.contrib_install_dir}",
    ] + list(options)
    runner.run("contribs", "Bootstrapping contribs", bootstrap, paths.contrib_build_dir, env)
    runner.run("contribs", "Listing contribs", runner.make_command("list"), paths.contrib_build_dir, env)
    runner.run("contribs", "Building contribs", runner.make_command(), paths.contrib_build_dir, env)
    print("")


def build_vlc_sources(runner, paths, toolchain, host_triplet, options):
    print(f"==================Building VLC for {toolchain.target.arch}========================")
    env = toolchain.environ()
    runner.run("vlc", "Bootstrapping VLC", ["./bootstrap"], paths.src_dir, env)

    os.makedirs(paths.vlc_build_dir, exist_ok=True)
    os.makedirs(paths.vlc_install_dir, exist_ok=True)
    configure = [
        os.path.join(paths.src_dir, "configure"),
        f"--with-contrib={paths.contrib_install_dir}",
        f"--host={host_triplet}",
        f"--prefix={paths.vlc_install_dir}",
    ] + list(options)
    runner.run("vlc", "Configuring VLC", configure, paths.vlc_build_dir, env)
    runner.run("vlc", "Building VLC", runner.make_command(), paths.vlc_build_dir, env)
    runner.run("vlc", "Installing VLC", runner.make_command("install"), paths.vlc_build_dir, env)
    print("")


def link_full_static(target, paths, toolchain, config, libtool=None, reader=None, verbose=False):
    """
    Remove unwanted modules, then generate the module list and link
    libvlc-full-static.a.

    Returns:
        str: path of the static library
    """
    print("==================Removing modules that are on the removal list========================")
    removed = remove_modules(
        paths.plugins_dir, config.module_removal.for_os(target.host_os)
    )
    for path in removed:
        if verbose:
            print(f"  removed {path}")
    print(f"removed {len(removed)} modules")
    print("")

    if libtool is None:
        libtool = find_apple_libtool()
    if reader is None:
        reader = get_symbol_reader(config.link.symbol_reader)

    print("==================Compile VLC static modules list object========================")
    assembler = LinkSetAssembler(
        paths.link_dir,
        toolchain,
        reader=reader,
        entry_prefix=config.link.entry_prefix,
        timeout_second=config.timeout,
        verbose=verbose,
    )
    link_set = assembler.assemble(
        paths.plugins_dir, paths.core_archives, paths.contrib_lib_dir
    )
    print(f"link set: {len(link_set.entries)} files, list at {link_set.manifest_path}")
    print("")

    print("==================Linking static libVLC========================")
    output = os.path.join(paths.link_dir, config.link.output)
    link_static_library(libtool, link_set.manifest_path, output, config.timeout)
    print(output)
    print("")
    return output


def build_vlc(
    arch,
    sdk_name,
    config,
    src_dir,
    build_dir,
    jobs=None,
    skip_tools=False,
    skip_contribs=False,
    skip_vlc=False,
    link_only=False,
    verbose=False,
):
    """
    Run the whole build for one target.

    Args:
        arch: target architecture, e.g. "arm64"
        sdk_name: SDK name, e.g. "iphonesimulator"
        config: BuildConfig
        src_dir: VLC source root
        build_dir: directory build outputs go to
        link_only: only remove modules and link against an existing install

    Returns:
        str: path of libvlc-full-static.a
    """
    before_time = time.time()
    target = resolve_target(arch, sdk_name, config)
    print_build_configuration(target)

    paths = BuildPaths(
        src_dir=os.path.abspath(src_dir),
        build_dir=os.path.abspath(build_dir),
        pseudo_triplet=target.pseudo_triplet,
    )
    # find libtool before spending hours on the build
    libtool = find_apple_libtool()

    if not link_only:
        runner = StageRunner(jobs=jobs, timeout_second=config.timeout)
        if not skip_tools:
            tools_env = dict(os.environ)
            tools_env.update(build_step_environment(target, paths.src_dir, config))
            build_tools(runner, paths, tools_env)

        contrib_toolchain = make_toolchain(
            target, paths.src_dir, config, CONTRIB_EXTRA_CFLAGS
        )
        host_triplet = get_host_triplet(contrib_toolchain)
        if not skip_contribs:
            build_contribs(
                runner,
                paths,
                contrib_toolchain,
                host_triplet,
                config.contrib_options.for_os(target.host_os),
            )
        if not skip_vlc:
            build_vlc_sources(
                runner,
                paths,
                contrib_toolchain.with_extra_cflags(VLC_EXTRA_CFLAGS),
                host_triplet,
                config.configure_options.for_os(target.host_os),
            )

    toolchain = make_toolchain(target, paths.src_dir, config, VLC_EXTRA_CFLAGS)
    output = link_full_static(target, paths, toolchain, config, libtool=libtool, verbose=verbose)

    after_time = time.time()
    print(time.strftime("%Y-%m-%d %H:%M:%S", time.localtime()))
    print("==================Output========================")
    print(output)
    print(f"use time: {int(after_time - before_time)} s")
    return output
