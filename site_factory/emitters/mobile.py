"""
mobile.py

Native mobile project scaffolds: a React Native (Expo-compatible) tree for
native-mobile-A and a Flutter tree for native-mobile-B. Platform folders are
placeholders; the build instructions explain how to generate them locally.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

from ..site_model import Element, SiteModel
from .common import display_name, escape_js, project_slug, to_json

APP_VERSION = "1.0.0"
BUNDLE_PREFIX = "com.sitefactory"


def bundle_id_for(name: str) -> str:
    """Reverse-DNS application id, e.g. 'Jewelry Store' -> 'com.sitefactory.jewelrystore'."""
    name = re.sub(r"[^a-z0-9]", "", (name or "").lower()) or "app"
    if name[0].isdigit():
        name = f"app{name}"
    return f"{BUNDLE_PREFIX}.{name}"


def bundle_id(site: SiteModel) -> str:
    return bundle_id_for(project_slug(site))


def _dart_string(s: str) -> str:
    escaped = (s or "").replace("\\", "\\\\").replace("'", "\\'").replace("$", "\\$").replace("\n", "\\n")
    return f"'{escaped}'"


def _hex_to_argb(color: str) -> str:
    """'#2563eb' -> '0xFF2563EB' for Flutter Color()."""
    value = (color or "").lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if not re.fullmatch(r"[0-9a-fA-F]{6}", value):
        value = "2563EB"
    return f"0xFF{value.upper()}"


# -----------------------------
# React Native (native-mobile-A)
# -----------------------------


def _rn_element(el: Element) -> str:
    text = escape_js(el.content)
    if el.type == "heading":
        return f"      <Text style={{styles.heading}}>{{{text}}}</Text>"
    if el.type == "button":
        return (
            f"      <TouchableOpacity style={{styles.button}} onPress={{() => onPress({escape_js(el.id)})}}>\n"
            f"        <Text style={{styles.buttonText}}>{{{text}}}</Text>\n"
            f"      </TouchableOpacity>"
        )
    if el.type == "image":
        uri = escape_js(el.content or "https://via.placeholder.com/300x200")
        return f"      <Image style={{styles.image}} source={{{{ uri: {uri} }}}} />"
    if el.type == "card":
        return f"      <View style={{styles.card}}>\n        <Text style={{styles.cardTitle}}>{{{text}}}</Text>\n      </View>"
    return f"      <Text style={{styles.text}}>{{{text}}}</Text>"


def _rn_home_screen(site: SiteModel) -> str:
    body = "\n".join(_rn_element(el) for el in site.elements) or "      <View />"
    return f"""import React from 'react';
import {{ Alert, Image, ScrollView, StyleSheet, Text, TouchableOpacity, View }} from 'react-native';
import theme from '../styles/theme';

export default function HomeScreen() {{
  const onPress = (id) => Alert.alert({escape_js(display_name(site))}, id);

  return (
    <ScrollView contentContainerStyle={{styles.container}}>
{body}
    </ScrollView>
  );
}}

const styles = StyleSheet.create({{
  container: {{ padding: theme.spacing * 16, backgroundColor: '#ffffff' }},
  heading: {{ fontSize: 28, fontWeight: 'bold', color: theme.colors.secondary, marginBottom: 12 }},
  text: {{ fontSize: 16, color: theme.colors.secondary, marginBottom: 12 }},
  button: {{ backgroundColor: theme.colors.primary, padding: 14, borderRadius: 6, marginBottom: 12 }},
  buttonText: {{ color: '#ffffff', textAlign: 'center', fontWeight: '600' }},
  image: {{ width: '100%', height: 200, marginBottom: 12 }},
  card: {{ padding: 16, borderRadius: 8, borderWidth: 1, borderColor: '#dddddd', marginBottom: 12 }},
  cardTitle: {{ fontSize: 18, fontWeight: '600', color: theme.colors.accent }},
}});
"""


def _rn_theme(site: SiteModel) -> str:
    t = site.design_tokens
    return f"""const theme = {{
  colors: {{
    primary: {escape_js(t.primary_color)},
    secondary: {escape_js(t.secondary_color)},
    accent: {escape_js(t.accent_color)},
  }},
  fonts: {{
    heading: {escape_js(t.heading_font)},
    body: {escape_js(t.body_font)},
  }},
  spacing: {t.spacing_scale},
}};

export default theme;
"""


def _rn_app_js(site: SiteModel) -> str:
    return f"""import React from 'react';
import {{ NavigationContainer }} from '@react-navigation/native';
import {{ createStackNavigator }} from '@react-navigation/stack';
import {{ StatusBar }} from 'react-native';
import HomeScreen from './src/screens/HomeScreen';
import theme from './src/styles/theme';

const Stack = createStackNavigator();

export default function App() {{
  return (
    <NavigationContainer>
      <StatusBar barStyle="light-content" backgroundColor={{theme.colors.primary}} />
      <Stack.Navigator initialRouteName="Home">
        <Stack.Screen name="Home" component={{HomeScreen}} options={{{{ title: {escape_js(display_name(site))} }}}} />
      </Stack.Navigator>
    </NavigationContainer>
  );
}}
"""


def _rn_package_json(site: SiteModel) -> str:
    return to_json(
        {
            "name": project_slug(site),
            "version": APP_VERSION,
            "private": True,
            "main": "index.js",
            "scripts": {
                "android": "react-native run-android",
                "ios": "react-native run-ios",
                "start": "react-native start",
                "test": "jest",
            },
            "dependencies": {
                "react": "18.2.0",
                "react-native": "0.72.0",
                "@react-navigation/native": "^6.1.0",
                "@react-navigation/stack": "^6.3.0",
                "react-native-screens": "^3.20.0",
                "react-native-safe-area-context": "^4.5.0",
                "react-native-gesture-handler": "^2.9.0",
            },
            "devDependencies": {
                "@babel/core": "^7.20.0",
                "@react-native/metro-config": "^0.72.0",
                "metro-react-native-babel-preset": "0.76.5",
                "jest": "^29.2.1",
            },
        }
    )


def _rn_app_json(site: SiteModel) -> str:
    name = display_name(site)
    app_id = bundle_id(site)
    background = site.design_tokens.primary_color
    return to_json(
        {
            "name": name,
            "displayName": name,
            "expo": {
                "name": name,
                "slug": project_slug(site),
                "version": APP_VERSION,
                "orientation": "portrait",
                "icon": "./assets/icon.png",
                "splash": {"image": "./assets/splash.png", "resizeMode": "contain", "backgroundColor": background},
                "ios": {"supportsTablet": True, "bundleIdentifier": app_id},
                "android": {"package": app_id},
            },
        }
    )


RN_BUILD_MD = """# React Native Build Instructions

## Prerequisites
- Node.js 16+
- React Native CLI
- Android Studio (Android builds)
- Xcode (iOS builds)

## Setup
1. Install dependencies: `npm install`
2. Generate the native folders if they are empty: `npx react-native eject` (or `npx expo prebuild`)
3. Android: `npx react-native run-android`
4. iOS: `npx react-native run-ios`

## Release builds
- Android: `cd android && ./gradlew bundleRelease`
- iOS: archive and distribute from Xcode
"""


def emit_react_native(site: SiteModel) -> Dict[str, Any]:
    return {
        "package.json": _rn_package_json(site),
        "app.json": _rn_app_json(site),
        "App.js": _rn_app_js(site),
        "index.js": (
            "import { AppRegistry } from 'react-native';\n"
            "import App from './App';\n"
            "import { name as appName } from './app.json';\n\n"
            "AppRegistry.registerComponent(appName, () => App);\n"
        ),
        "babel.config.js": "module.exports = {\n  presets: ['module:metro-react-native-babel-preset'],\n};\n",
        "metro.config.js": "module.exports = require('@react-native/metro-config').getDefaultConfig(__dirname);\n",
        "src": {
            "screens": {"HomeScreen.js": _rn_home_screen(site)},
            "styles": {"theme.js": _rn_theme(site)},
        },
        "android": {},
        "ios": {},
        "BUILD.md": RN_BUILD_MD,
    }


# -----------------------------
# Flutter (native-mobile-B)
# -----------------------------


def _flutter_widget(el: Element) -> str:
    text = _dart_string(el.content)
    if el.type == "heading":
        return f"            Text({text}, style: Theme.of(context).textTheme.headlineMedium),"
    if el.type == "button":
        return f"            ElevatedButton(onPressed: () {{}}, child: Text({text})),"
    if el.type == "image":
        return f"            Image.network({_dart_string(el.content or 'https://via.placeholder.com/300x200')}),"
    if el.type == "card":
        return f"            Card(child: Padding(padding: const EdgeInsets.all(16), child: Text({text}))),"
    return f"            Text({text}),"


def _flutter_home_screen(site: SiteModel) -> str:
    widgets: List[str] = [_flutter_widget(el) for el in site.elements]
    children = "\n".join(widgets)
    return f"""import 'package:flutter/material.dart';

class HomeScreen extends StatelessWidget {{
  const HomeScreen({{super.key}});

  @override
  Widget build(BuildContext context) {{
    return Scaffold(
      appBar: AppBar(title: Text({_dart_string(display_name(site))})),
      body: SingleChildScrollView(
        padding: const EdgeInsets.all(16),
        child: Column(
          crossAxisAlignment: CrossAxisAlignment.start,
          children: [
{children}
          ],
        ),
      ),
    );
  }}
}}
"""


def _flutter_theme(site: SiteModel) -> str:
    t = site.design_tokens
    return f"""import 'package:flutter/material.dart';

class AppTheme {{
  static const Color primary = Color({_hex_to_argb(t.primary_color)});
  static const Color secondary = Color({_hex_to_argb(t.secondary_color)});
  static const Color accent = Color({_hex_to_argb(t.accent_color)});

  static ThemeData get lightTheme {{
    return ThemeData(
      colorScheme: ColorScheme.fromSeed(seedColor: primary, secondary: accent),
      useMaterial3: true,
    );
  }}
}}
"""


def _flutter_main(site: SiteModel) -> str:
    return f"""import 'package:flutter/material.dart';
import 'screens/home_screen.dart';
import 'utils/theme.dart';

void main() {{
  runApp(const MyApp());
}}

class MyApp extends StatelessWidget {{
  const MyApp({{super.key}});

  @override
  Widget build(BuildContext context) {{
    return MaterialApp(
      title: {_dart_string(display_name(site))},
      theme: AppTheme.lightTheme,
      home: const HomeScreen(),
      debugShowCheckedModeBanner: false,
    );
  }}
}}
"""


def _flutter_pubspec(site: SiteModel) -> str:
    package = project_slug(site).replace("-", "_").replace(".", "_")
    if package[0].isdigit():
        package = f"app_{package}"
    description = (site.seo.description or display_name(site)).replace("\n", " ").replace('"', "'")
    return f"""name: {package}
description: "{description}"
publish_to: "none"
version: {APP_VERSION}+1

environment:
  sdk: ">=3.0.0 <4.0.0"

dependencies:
  flutter:
    sdk: flutter
  cupertino_icons: ^1.0.2

dev_dependencies:
  flutter_test:
    sdk: flutter
  flutter_lints: ^2.0.0

flutter:
  uses-material-design: true
"""


FLUTTER_BUILD_MD = """# Flutter Build Instructions

## Prerequisites
- Flutter SDK (Dart 3)
- Android Studio / Xcode

## Setup
1. Generate the platform folders if they are empty: `flutter create .`
2. Install dependencies: `flutter pub get`
3. Run: `flutter run`

## Release builds
- Android: `flutter build appbundle`
- iOS: `flutter build ipa`
"""


def emit_flutter(site: SiteModel) -> Dict[str, Any]:
    return {
        "pubspec.yaml": _flutter_pubspec(site),
        "lib": {
            "main.dart": _flutter_main(site),
            "screens": {"home_screen.dart": _flutter_home_screen(site)},
            "utils": {"theme.dart": _flutter_theme(site)},
        },
        "android": {},
        "ios": {},
        "BUILD.md": FLUTTER_BUILD_MD,
    }
