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

from copier_templates_extensions import ContextHook

from vlcbuild.utils.apple.config import (
    APPLE_HOST_OS_LIST,
    DEFAULT_CONFIGURE_OPTIONS,
    DEFAULT_CONTRIB_OPTIONS,
    DEFAULT_MODULE_REMOVAL,
    DEFAULT_SYMBOL_BLACKLIST,
    merge_options,
)


def split_list(value):
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(x).strip() for x in value if str(x).strip()]
    return [x.strip() for x in str(value).split(",") if x.strip()]


class ContextUpdater(ContextHook):
    update = False

    def hook(self, context):
        context["host_os_list"] = list(APPLE_HOST_OS_LIST)
        context["contrib_options"] = list(DEFAULT_CONTRIB_OPTIONS)
        context["configure_options"] = list(DEFAULT_CONFIGURE_OPTIONS)
        context["symbol_blacklist"] = list(DEFAULT_SYMBOL_BLACKLIST)
        context["removed_modules"] = merge_options(
            DEFAULT_MODULE_REMOVAL, split_list(context.get("extra_removed_modules"))
        )
