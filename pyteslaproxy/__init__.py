"""Library to send commands to a Tesla through the vehicle command proxy.

This library wakes the vehicle when needed and delivers commands such as
door lock/unlock and sentry mode through a local HTTPS proxy, after
authorizing with the Tesla Fleet API OAuth flow.

NOTE: This work is not officially supported by Tesla and functionality
can stop working at any time without warning.

"""
