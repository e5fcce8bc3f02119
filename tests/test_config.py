# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the configuration loading."""

import os
import pytest
from skywalking_mcp_server.config import configure_logging, load_config, parse_arguments
from unittest.mock import call, patch


@pytest.fixture(autouse=True)
def no_dotenv():
    """Keep a local .env file out of the tests."""
    with patch('skywalking_mcp_server.config.load_dotenv') as mock_load_dotenv:
        yield mock_load_dotenv


class TestParseArguments:
    """Tests for parse_arguments."""

    def test_no_arguments(self):
        """Test that nothing is set without arguments."""
        args = parse_arguments([])
        assert args.url is None
        assert args.transport is None
        assert args.port is None

    def test_all_arguments(self):
        """Test every flag."""
        args = parse_arguments(
            [
                '--url',
                'http://oap:12800',
                '--transport',
                'sse',
                '--host',
                '0.0.0.0',
                '--port',
                '9000',
                '--endpoint-path',
                '/skywalking',
                '--log-level',
                'debug',
                '--log-file',
                '/tmp/sw.log',
            ]
        )
        assert args.url == 'http://oap:12800'
        assert args.transport == 'sse'
        assert args.host == '0.0.0.0'
        assert args.port == 9000
        assert args.endpoint_path == '/skywalking'
        assert args.log_level == 'debug'
        assert args.log_file == '/tmp/sw.log'

    def test_unknown_transport(self):
        """Test that argparse rejects unknown transports."""
        with pytest.raises(SystemExit):
            parse_arguments(['--transport', 'websocket'])


class TestLoadConfig:
    """Tests for load_config."""

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self, no_dotenv):
        """Test the default configuration."""
        config = load_config()
        assert config.url == 'http://localhost:12800'
        assert config.transport == 'stdio'
        assert config.host == 'localhost'
        assert config.port == 8000
        assert config.endpoint_path == '/mcp'
        assert config.log_level == 'INFO'
        assert config.log_file is None
        no_dotenv.assert_called_once()

    @patch.dict(
        os.environ,
        {
            'SW_URL': 'http://env-oap:12800',
            'MCP_TRANSPORT': 'streamable-http',
            'MCP_HOST': '0.0.0.0',
            'MCP_PORT': '9100',
            'MCP_ENDPOINT_PATH': '/sw',
            'SW_MCP_LOG_LEVEL': 'warning',
            'SW_MCP_LOG_FILE': '/tmp/env.log',
        },
        clear=True,
    )
    def test_environment(self):
        """Test that environment variables override the defaults."""
        config = load_config()
        assert config.url == 'http://env-oap:12800'
        assert config.transport == 'streamable-http'
        assert config.host == '0.0.0.0'
        assert config.port == 9100
        assert config.endpoint_path == '/sw'
        assert config.log_level == 'WARNING'
        assert config.log_file == '/tmp/env.log'

    @patch.dict(os.environ, {'SW_URL': 'http://env-oap:12800', 'MCP_PORT': '9100'}, clear=True)
    def test_arguments_override_environment(self):
        """Test that command line arguments win."""
        args = parse_arguments(['--url', 'http://arg-oap:12800', '--port', '9200'])
        config = load_config(args)
        assert config.url == 'http://arg-oap:12800'
        assert config.port == 9200

    @patch.dict(os.environ, {'MCP_PORT': 'eighty'}, clear=True)
    def test_invalid_port(self):
        """Test that a non-numeric port is rejected."""
        with pytest.raises(ValueError) as exc_info:
            load_config()
        assert str(exc_info.value) == 'Invalid MCP_PORT value: eighty'

    @patch.dict(os.environ, {'MCP_TRANSPORT': 'websocket'}, clear=True)
    def test_invalid_transport(self):
        """Test that an unknown transport from the environment is rejected."""
        with pytest.raises(ValueError) as exc_info:
            load_config()
        assert 'Invalid transport websocket' in str(exc_info.value)

    @patch.dict(os.environ, {'SW_MCP_LOG_LEVEL': 'debug'}, clear=True)
    def test_lower_case_log_level(self):
        """Test that the log level is case-insensitive."""
        assert load_config().log_level == 'DEBUG'

    @patch.dict(os.environ, {'SW_MCP_LOG_LEVEL': 'loud'}, clear=True)
    def test_invalid_log_level_from_environment(self):
        """Test that an unknown log level from the environment is rejected."""
        with pytest.raises(ValueError) as exc_info:
            load_config()
        assert str(exc_info.value) == 'Invalid log level LOUD'

    @patch.dict(os.environ, {}, clear=True)
    def test_invalid_log_level_from_arguments(self):
        """Test that an unknown log level argument is rejected."""
        with pytest.raises(ValueError) as exc_info:
            load_config(parse_arguments(['--log-level', 'verbose']))
        assert str(exc_info.value) == 'Invalid log level VERBOSE'


class TestConfigureLogging:
    """Tests for configure_logging."""

    @patch('skywalking_mcp_server.config.logger')
    def test_stderr_only(self, mock_logger):
        """Test that only the stderr sink is added without a file."""
        configure_logging('info')
        mock_logger.remove.assert_called_once()
        assert mock_logger.add.call_count == 1
        assert mock_logger.add.call_args.kwargs['level'] == 'INFO'

    @patch('skywalking_mcp_server.config.logger')
    def test_with_file(self, mock_logger):
        """Test that a DEBUG file sink is added."""
        configure_logging('ERROR', '/tmp/sw.log')
        assert mock_logger.add.call_args_list[1] == call('/tmp/sw.log', level='DEBUG')
